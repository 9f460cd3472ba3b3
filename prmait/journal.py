"""Journal entries: loading the book and building the effects for each command.

Every builder returns an :class:`EffectMachine` and performs no I/O itself
(``Book.load`` reads the directory before any effect is built).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import git, render
from .effects import (
    CreateDirectory,
    EffectMachine,
    OpenInEditor,
    PrintToStdOut,
    RemoveFile,
    WriteFile,
)
from .errors import AmbiguousEntryMatch, NoEntries
from .models import Entry, to_file_name
from .storage import encode_document, json_files, load_document

log = logging.getLogger(__name__)


@dataclass
class EntryDescription:
    entry: Entry
    file_name: str


@dataclass
class Book:
    """Every entry stored in one journal directory, oldest first."""

    location: Path
    entries: list[EntryDescription] = field(default_factory=list)

    @classmethod
    def load(cls, directory: str | Path) -> Book:
        directory = Path(directory)
        entries = [
            EntryDescription(load_document(p, Entry.from_json), p.name)
            for p in json_files(directory)
        ]
        entries.sort(key=lambda d: (d.entry.at, d.file_name))
        log.debug("loaded %d journal entries from %s", len(entries), directory)
        return cls(directory, entries)

    def files(self) -> list[Path]:
        return [self.location / d.file_name for d in self.entries]

    def matching(self, specifier: str) -> list[EntryDescription]:
        """Entries whose file name contains ``specifier``."""
        return [d for d in self.entries if specifier in d.file_name]

    def last(self) -> EntryDescription:
        if not self.entries:
            raise NoEntries()
        return self.entries[-1]


# ---------------------------------------------------------------------------
# Effect builders
# ---------------------------------------------------------------------------

def new_entry(
    entry: Entry,
    journal_path: str | Path,
    repo_root: str | Path,
    file_name_format: str,
    git_binary: str = "git",
) -> EffectMachine:
    journal_path = Path(journal_path)
    file_name = to_file_name(entry.at, file_name_format)
    file_path = journal_path / file_name

    machine = EffectMachine()
    machine.append(CreateDirectory(journal_path, ok_if_exists=True), forgiving=False)
    machine.append(
        WriteFile(
            content=encode_document(entry.to_json(), file_name),
            path=file_path,
            can_create=True,
            can_overwrite=False,
        ),
        forgiving=False,
    )
    machine.extend(git.sync_change(
        repo_root,
        [file_path],
        f"feat(journal): add new journal entry {file_name}",
        git=git_binary,
    ))
    return machine


def list_entries(book: Book, time_format: str = render.DISPLAY_FORMAT) -> EffectMachine:
    machine = EffectMachine()
    machine.append(PrintToStdOut(render.entry_table(book.entries, time_format)), forgiving=False)
    return machine


def _edit(
    files: list[Path],
    repo_root: str | Path,
    editor: str,
    commit_message: str,
    git_binary: str,
    stage: list[Path] | None = None,
) -> EffectMachine:
    machine = EffectMachine()
    # A failed editor session still commits whatever was saved.
    machine.append(OpenInEditor(editor, files), forgiving=True)
    machine.extend(git.sync_change(
        repo_root, stage or files, commit_message, git=git_binary
    ))
    return machine


def edit_last_entry(
    book: Book,
    repo_root: str | Path,
    editor: str,
    git_binary: str = "git",
) -> EffectMachine:
    last = book.last()
    return _edit(
        [book.location / last.file_name],
        repo_root,
        editor,
        f"feat(journal): edit the entry {last.file_name}",
        git_binary,
    )


def edit_specific_entries(
    book: Book,
    specifier: str,
    repo_root: str | Path,
    editor: str,
    git_binary: str = "git",
) -> EffectMachine:
    matches = book.matching(specifier)
    if not matches:
        raise NoEntries(specifier)
    return _edit(
        [book.location / d.file_name for d in matches],
        repo_root,
        editor,
        "feat(journal): edit the few entries",
        git_binary,
    )


def edit_all_entries(
    book: Book,
    repo_root: str | Path,
    editor: str,
    git_binary: str = "git",
) -> EffectMachine:
    if not book.entries:
        raise NoEntries()
    return _edit(
        book.files(),
        repo_root,
        editor,
        "feat(journal): edit the few entries",
        git_binary,
        stage=[book.location],
    )


def find_entry(book: Book, specifier: str) -> EntryDescription:
    """The single entry whose file name contains ``specifier``."""
    matches = book.matching(specifier)
    if not matches:
        raise NoEntries(specifier)
    if len(matches) > 1:
        raise AmbiguousEntryMatch(specifier, [d.file_name for d in matches])
    return matches[0]


def delete_entry(
    book: Book,
    specifier: str,
    repo_root: str | Path,
    git_binary: str = "git",
) -> EffectMachine:
    target = find_entry(book, specifier)
    file_path = book.location / target.file_name

    machine = EffectMachine()
    machine.append(RemoveFile(file_path), forgiving=False)
    machine.extend(git.sync_change(
        repo_root,
        [file_path],
        f"feat(journal): delete the entry {target.file_name}",
        git=git_binary,
    ))
    return machine


def preview(description: EntryDescription, time_format: str = render.DISPLAY_FORMAT) -> str:
    """Short one-line form shown before a destructive action."""
    body = description.entry.body
    if len(body) > 40:
        body = body[:40] + "..."
    stamp = description.entry.at.strftime(time_format)
    return f"{description.file_name} ({stamp}) -> {body}"
