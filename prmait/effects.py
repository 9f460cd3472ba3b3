"""Effect descriptions and the machine that applies them.

Feature handlers never touch the filesystem or spawn programs themselves.
They describe what should happen as a list of effects, and this module is the
only place where those descriptions are turned into I/O.

Failure semantics:
  - an effect marked ``forgiving`` may fail; the failure is logged and
    recorded in the result, and the remaining effects still run
  - any other failure aborts the machine; effects not yet applied are never
    run and nothing already applied is rolled back
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Mapping, Union

import anyio
import click
import typer

from .errors import (
    CommandFailed,
    DirAlreadyExists,
    DirCreateFailed,
    EditorFailed,
    EffectError,
    FileAlreadyExists,
    FileDoesNotExist,
    FileRemoveFailed,
    FileWithDirNameExists,
    FileWriteFailed,
    UnsupportedShell,
)

log = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Descriptions
# -------------------------------------------------------------------

@dataclass(frozen=True)
class WriteFile:
    """Replace the full contents of ``path``."""

    content: bytes
    path: Path
    can_create: bool
    can_overwrite: bool

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True)
class CreateDirectory:
    path: Path
    ok_if_exists: bool = False

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True)
class RemoveFile:
    path: Path

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True)
class OpenInEditor:
    editor_command: str
    files: tuple[Path, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "files", tuple(Path(f) for f in self.files))


@dataclass(frozen=True)
class RunExternalCommand:
    program: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))
        object.__setattr__(self, "env", dict(self.env))


@dataclass(frozen=True)
class PrintToStdOut:
    text: str


@dataclass(frozen=True)
class PrintToStdErr:
    text: str


@dataclass(frozen=True)
class GenerateShellCompletion:
    shell: str
    command: click.Command
    prog_name: str


@dataclass(frozen=True, eq=False)
class RunNestedMachine:
    """Run ``machine`` with the concurrent entry point."""

    machine: EffectMachine


EffectDescription = Union[
    WriteFile,
    CreateDirectory,
    RemoveFile,
    OpenInEditor,
    RunExternalCommand,
    PrintToStdOut,
    PrintToStdErr,
    GenerateShellCompletion,
    RunNestedMachine,
]


def describe(description: EffectDescription) -> str:
    """Short human-readable summary, used in log lines."""
    if isinstance(description, WriteFile):
        return f"write {description.path}"
    if isinstance(description, CreateDirectory):
        return f"mkdir {description.path}"
    if isinstance(description, RemoveFile):
        return f"remove {description.path}"
    if isinstance(description, OpenInEditor):
        return f"edit {len(description.files)} file(s) with {description.editor_command}"
    if isinstance(description, RunExternalCommand):
        return shlex.join([description.program, *description.args])
    if isinstance(description, (PrintToStdOut, PrintToStdErr)):
        return type(description).__name__
    if isinstance(description, GenerateShellCompletion):
        return f"{description.shell} completion for {description.prog_name}"
    if isinstance(description, RunNestedMachine):
        return f"nested machine of {len(description.machine)} effect(s)"
    return repr(description)


# -------------------------------------------------------------------
# Wrapper / result
# -------------------------------------------------------------------

@dataclass
class Effect:
    """One description plus whether its failure may be tolerated."""

    description: EffectDescription
    forgiving: bool = False


@dataclass
class MachineResult:
    """Outcome of a run that finished without a fatal failure."""

    applied: int = 0
    forgiven: list[EffectError] = field(default_factory=list)


# -------------------------------------------------------------------
# Executor
# -------------------------------------------------------------------

Runner = Callable[..., "subprocess.CompletedProcess[Any]"]


class Executor:
    """Applies single effect descriptions.

    External capabilities are injected so tests can substitute fakes:
    ``runner`` is called like :func:`subprocess.run`, ``echo`` like
    :func:`typer.echo`, and ``environ`` is the base environment handed to
    spawned programs.
    """

    def __init__(
        self,
        runner: Runner = subprocess.run,
        echo: Callable[..., Any] = typer.echo,
        environ: Mapping[str, str] | None = None,
    ):
        self.runner = runner
        self.echo = echo
        self.environ = dict(os.environ if environ is None else environ)

    async def apply(self, description: EffectDescription) -> MachineResult | None:
        """Apply one description; a nested machine hands back its own result."""
        if isinstance(description, WriteFile):
            self._write_file(description)
        elif isinstance(description, CreateDirectory):
            self._create_directory(description)
        elif isinstance(description, RemoveFile):
            self._remove_file(description)
        elif isinstance(description, OpenInEditor):
            await self._open_in_editor(description)
        elif isinstance(description, RunExternalCommand):
            await self._run_external_command(description)
        elif isinstance(description, PrintToStdOut):
            self.echo(description.text)
        elif isinstance(description, PrintToStdErr):
            self.echo(description.text, err=True)
        elif isinstance(description, GenerateShellCompletion):
            self._generate_shell_completion(description)
        elif isinstance(description, RunNestedMachine):
            return await description.machine.run_concurrent(self)
        else:
            raise TypeError(f"unknown effect description: {description!r}")

    # -- filesystem ---------------------------------------------------

    def _write_file(self, d: WriteFile) -> None:
        exists = d.path.exists()
        if not d.can_create and not exists:
            raise FileDoesNotExist(d.path)
        if not d.can_overwrite and exists:
            raise FileAlreadyExists(d.path)
        try:
            d.path.write_bytes(d.content)
        except OSError as exc:
            raise FileWriteFailed(d.path, str(exc)) from exc

    def _create_directory(self, d: CreateDirectory) -> None:
        if d.path.exists():
            if not d.path.is_dir():
                raise FileWithDirNameExists(d.path)
            if d.ok_if_exists:
                log.debug("directory %s already exists", d.path)
                return
            raise DirAlreadyExists(d.path)
        try:
            d.path.mkdir(parents=True)
        except OSError as exc:
            raise DirCreateFailed(d.path, str(exc)) from exc

    def _remove_file(self, d: RemoveFile) -> None:
        if not d.path.is_file():
            raise FileDoesNotExist(d.path)
        try:
            d.path.unlink()
        except OSError as exc:
            raise FileRemoveFailed(d.path, str(exc)) from exc

    # -- processes ----------------------------------------------------

    async def _spawn(
        self,
        argv: list[str],
        env: Mapping[str, str] | None,
        capture: bool,
    ) -> subprocess.CompletedProcess:
        return await anyio.to_thread.run_sync(
            lambda: self.runner(
                argv,
                env=env,
                capture_output=capture,
                text=True,
                check=False,
            )
        )

    async def _open_in_editor(self, d: OpenInEditor) -> None:
        try:
            editor_argv = shlex.split(d.editor_command)
        except ValueError as exc:
            raise EditorFailed(d.editor_command, str(exc)) from exc
        if not editor_argv:
            raise EditorFailed(d.editor_command, "no editor command given")
        argv = editor_argv + [str(f) for f in d.files]
        try:
            # The editor needs the terminal, so its output is not captured.
            result = await self._spawn(argv, env=self.environ, capture=False)
        except OSError as exc:
            raise EditorFailed(d.editor_command, str(exc)) from exc
        if result.returncode != 0:
            raise EditorFailed(
                d.editor_command, f"exited with code {result.returncode}"
            )

    async def _run_external_command(self, d: RunExternalCommand) -> None:
        argv = [d.program, *d.args]
        env = {**self.environ, **d.env}
        try:
            result = await self._spawn(argv, env=env, capture=True)
        except OSError as exc:
            raise CommandFailed(d.program, list(d.args), None, str(exc)) from exc
        if result.stdout:
            log.debug("%s: %s", d.program, result.stdout.strip())
        if result.returncode != 0:
            raise CommandFailed(
                d.program, list(d.args), result.returncode, result.stderr or ""
            )

    # -- output -------------------------------------------------------

    def _generate_shell_completion(self, d: GenerateShellCompletion) -> None:
        from click.shell_completion import get_completion_class

        completion_class = get_completion_class(d.shell)
        if completion_class is None:
            raise UnsupportedShell(d.shell)
        complete_var = "_{}_COMPLETE".format(
            d.prog_name.replace("-", "_").replace(".", "_").upper()
        )
        completion = completion_class(d.command, {}, d.prog_name, complete_var)
        self.echo(completion.source())


# -------------------------------------------------------------------
# Machine
# -------------------------------------------------------------------

class EffectMachine:
    """Ordered effects, consumed exactly once by one of the run methods.

    ``run_sequential`` applies effects strictly in append order and stops at
    the first fatal failure.

    ``run_concurrent`` starts every effect at once and waits for all of them.
    A fatal failure does NOT stop the other effects: they may already have
    done their I/O by the time the failure is reported. Only put effects with
    no ordering dependency between them here (never the sync chain).
    """

    def __init__(self, effects: Iterable[Effect] = ()):
        self._effects: list[Effect] = list(effects)
        self._consumed = False

    def append(self, description: EffectDescription, forgiving: bool) -> None:
        self._effects.append(Effect(description, forgiving))

    def extend(self, effects: Iterable[Effect]) -> None:
        self._effects.extend(effects)

    def __len__(self) -> int:
        return len(self._effects)

    def __iter__(self) -> Iterator[Effect]:
        return iter(list(self._effects))

    def __repr__(self) -> str:
        return f"EffectMachine({len(self._effects)} effects)"

    @property
    def descriptions(self) -> list[EffectDescription]:
        return [e.description for e in self._effects]

    def _drain(self) -> list[Effect]:
        if self._consumed:
            raise RuntimeError("this effect machine has already been run")
        self._consumed = True
        effects, self._effects = self._effects, []
        return effects

    async def run_sequential(self, executor: Executor | None = None) -> MachineResult:
        executor = executor or Executor()
        result = MachineResult()
        for effect in self._drain():
            summary = describe(effect.description)
            try:
                nested = await executor.apply(effect.description)
            except EffectError as exc:
                _settle(effect, summary, exc, result)
                continue
            log.debug("applied: %s", summary)
            result.applied += 1
            if nested is not None:
                result.forgiven.extend(nested.forgiven)
        log.debug("done with all effects")
        return result

    async def run_concurrent(self, executor: Executor | None = None) -> MachineResult:
        executor = executor or Executor()
        effects = self._drain()
        outcomes: list[EffectError | MachineResult | None] = [None] * len(effects)

        async def _unit(index: int, effect: Effect) -> None:
            # Failures are kept per unit so one unit never cancels another.
            try:
                outcomes[index] = await executor.apply(effect.description)
            except EffectError as exc:
                outcomes[index] = exc

        async with anyio.create_task_group() as tg:
            for index, effect in enumerate(effects):
                tg.start_soon(_unit, index, effect)

        result = MachineResult()
        for effect, outcome in zip(effects, outcomes):
            summary = describe(effect.description)
            if isinstance(outcome, EffectError):
                _settle(effect, summary, outcome, result)
                continue
            log.debug("applied: %s", summary)
            result.applied += 1
            if outcome is not None:
                result.forgiven.extend(outcome.forgiven)
        return result


def _settle(
    effect: Effect, summary: str, error: EffectError, result: MachineResult
) -> None:
    """Record a forgiven failure or re-raise a fatal one."""
    if not effect.forgiving:
        log.error("%s failed and is not forgiving, stopping: %s", summary, error)
        raise error
    log.warning("%s failed, continuing: %s", summary, error)
    result.forgiven.append(error)
