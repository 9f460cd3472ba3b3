"""Shared fixtures for prmait tests."""

import subprocess
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from prmait.effects import Executor
from prmait.models import Area, Entry, Mood, State, Task


def _git(*args, cwd):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


class RecordingRunner:
    """Stands in for subprocess.run; records every argv in call order.

    ``fail`` maps a program name or a subcommand (e.g. ``"push"``) to the
    exit code it should return.
    """

    def __init__(self, fail=None, stderr="boom"):
        self.calls = []
        self.fail = dict(fail or {})
        self.stderr = stderr

    def __call__(self, argv, **kwargs):
        self.calls.append((list(argv), kwargs))
        code = 0
        for word in argv:
            if word in self.fail:
                code = self.fail[word]
        return subprocess.CompletedProcess(argv, code, stdout="", stderr=self.stderr if code else "")

    @property
    def argvs(self):
        return [argv for argv, _ in self.calls]


class EchoSink:
    """Stands in for typer.echo."""

    def __init__(self):
        self.out = []
        self.err = []

    def __call__(self, text="", err=False, **kwargs):
        (self.err if err else self.out).append(text)


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def echo():
    return EchoSink()


@pytest.fixture
def executor(runner, echo):
    """Executor with fake process runner and output sink."""
    return Executor(runner=runner, echo=echo, environ={"HOME": "/home/test"})


@pytest.fixture
def git_repo(tmp_path):
    """A real working copy named 'notes' with a bare 'origin' it pushes to."""
    remote = tmp_path / "remote.git"
    _git("init", "--bare", "-b", "main", str(remote), cwd=tmp_path)

    repo = tmp_path / "notes"
    repo.mkdir()
    _git("init", "-b", "main", cwd=repo)
    _git("config", "user.email", "test@test.com", cwd=repo)
    _git("config", "user.name", "test", cwd=repo)
    # Disable commit signing for tests
    _git("config", "commit.gpgsign", "false", cwd=repo)
    _git("config", "pull.rebase", "false", cwd=repo)
    (repo / "README.md").write_text("# Notes")
    _git("add", ".", cwd=repo)
    _git("commit", "--no-gpg-sign", "-m", "init", cwd=repo)
    _git("remote", "add", "origin", str(remote), cwd=repo)
    _git("push", "-u", "origin", "main", cwd=repo)
    return repo


def remote_log(repo: Path) -> list[str]:
    """Commit subjects on origin/main, newest first."""
    out = subprocess.run(
        ["git", "log", "--format=%s", "origin/main"],
        cwd=repo, check=True, capture_output=True, text=True,
    )
    return out.stdout.splitlines()


@pytest.fixture
def config_file(tmp_path, git_repo):
    """Config pointing the journal and tasks into the git_repo working copy."""
    path = tmp_path / "config.yaml"
    path.write_text(f"""\
time_offset: [0, 0, 0]
journal:
  path: {git_repo / "journal"}
  file_name_format: "%Y-%m-%d-%H-%M-%S.json"
task:
  path: {git_repo / "tasks"}
  file_name_format: "%Y-%m-%d-%H-%M-%S.json"
river:
  control_binary: riverctl
""")
    return path


T0 = datetime(2024, 4, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def full_task():
    """A task with every optional field set."""
    return Task(
        id=1712741400,
        time_created=T0,
        state_log=[
            State.todo(T0),
            State.abandoned(T0 + timedelta(hours=1), "out of scope"),
            State.done(T0 + timedelta(days=1)),
        ],
        title="write the report",
        description="quarterly numbers",
        area=Area.WORK,
        people=["alice", "bob"],
        projects=["notes"],
        start=date(2024, 4, 10),
        end=date(2024, 4, 20),
    )


@pytest.fixture
def bare_task():
    """A task with every optional field empty."""
    return Task(id=1712741401, time_created=T0, state_log=[State.todo(T0)], title="bare")


@pytest.fixture
def entry():
    return Entry(
        at=datetime(2024, 4, 10, 21, 0, tzinfo=timezone(timedelta(hours=3, minutes=30))),
        body="long day, good walk",
        tags=["walk", "work"],
        mood=Mood.GOOD,
        people=["alice"],
    )


def write_task(directory: Path, task: Task, file_name: str | None = None) -> Path:
    import json

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (file_name or f"{task.id}.json")
    path.write_text(json.dumps(task.to_json(), indent=2))
    return path
