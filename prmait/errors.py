"""Exception hierarchy shared by the effect engine and the feature handlers."""

from __future__ import annotations

from pathlib import Path


class PrmaitError(Exception):
    """Base class for every error the CLI reports to the operator."""


# -------------------------------------------------------------------
# Effect application (precondition / subprocess)
# -------------------------------------------------------------------

class EffectError(PrmaitError):
    """Raised when applying a single effect description fails."""


class FileDoesNotExist(EffectError):
    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"file does not exist: {self.path}")


class FileAlreadyExists(EffectError):
    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"file already exists: {self.path}")


class DirAlreadyExists(EffectError):
    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"directory already exists: {self.path}")


class FileWithDirNameExists(EffectError):
    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"a file with the directory name exists: {self.path}")


class FileWriteFailed(EffectError):
    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        super().__init__(f"could not write to {self.path}: {reason}")


class FileRemoveFailed(EffectError):
    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        super().__init__(f"could not remove {self.path}: {reason}")


class DirCreateFailed(EffectError):
    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        super().__init__(f"could not create directory {self.path}: {reason}")


class EditorFailed(EffectError):
    def __init__(self, editor: str, reason: str):
        self.editor = editor
        super().__init__(f"editor '{editor}' failed: {reason}")


class CommandFailed(EffectError):
    """A spawned program exited non-zero or could not be started."""

    def __init__(
        self,
        program: str,
        args: list[str],
        returncode: int | None,
        stderr: str = "",
    ):
        self.program = program
        self.arguments = list(args)
        self.returncode = returncode
        self.stderr = stderr
        cmdline = " ".join([program, *self.arguments])
        if returncode is None:
            msg = f"could not run `{cmdline}`"
        else:
            msg = f"`{cmdline}` exited with code {returncode}"
        if stderr:
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class UnsupportedShell(EffectError):
    def __init__(self, shell: str):
        self.shell = shell
        super().__init__(f"no completion support for shell '{shell}'")


# -------------------------------------------------------------------
# Identifier resolution
# -------------------------------------------------------------------

class ResolutionError(PrmaitError):
    """An identifier did not resolve to exactly one stored item."""


class NoTasksFound(ResolutionError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"no tasks matching '{identifier}' were found")


class AmbiguousTaskMatch(ResolutionError):
    def __init__(self, identifier: str, matches: list):
        self.identifier = identifier
        self.matches = list(matches)
        ids = ", ".join(str(m.task.id) for m in self.matches)
        super().__init__(
            f"more than one task matches '{identifier}': {ids}"
        )


class NoEntries(ResolutionError):
    def __init__(self, specifier: str = ""):
        self.specifier = specifier
        if specifier:
            super().__init__(f"no journal entries matching '{specifier}'")
        else:
            super().__init__("there are no journal entries")


class AmbiguousEntryMatch(ResolutionError):
    def __init__(self, specifier: str, file_names: list[str]):
        self.specifier = specifier
        self.file_names = list(file_names)
        super().__init__(
            f"more than one entry matches '{specifier}': "
            + ", ".join(self.file_names)
        )


# -------------------------------------------------------------------
# Stored documents / configuration / input grammars
# -------------------------------------------------------------------

class StoredFileError(PrmaitError):
    """A stored entry or task could not be read, parsed or encoded."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"{file_name}: {reason}")


class ConfigError(PrmaitError):
    """Missing or invalid configuration, detected before effects are built."""


class NotARepository(PrmaitError):
    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"{self.path} is not inside a git working copy")


class DateParseError(PrmaitError):
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"could not understand the date '{text}'")


class BulkLineError(PrmaitError):
    def __init__(self, line_no: int, line: str, reason: str):
        self.line_no = line_no
        self.line = line
        super().__init__(f"line {line_no}: {reason}: {line!r}")
