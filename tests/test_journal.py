"""Tests for journal loading and the journal effect builders."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from prmait import journal
from prmait.effects import (
    CreateDirectory,
    Executor,
    OpenInEditor,
    PrintToStdOut,
    RemoveFile,
    WriteFile,
)
from prmait.errors import AmbiguousEntryMatch, FileAlreadyExists, NoEntries, StoredFileError
from prmait.journal import Book, EntryDescription
from prmait.models import Entry, Mood

from conftest import remote_log

FMT = "%Y-%m-%d-%H-%M-%S.json"
T0 = datetime(2024, 4, 10, 21, 0, tzinfo=timezone.utc)


def _store(directory, at, body="text"):
    directory.mkdir(parents=True, exist_ok=True)
    entry = Entry(at=at, body=body)
    (directory / at.strftime(FMT)).write_text(json.dumps(entry.to_json()))
    return entry


@pytest.fixture
def book(tmp_path):
    directory = tmp_path / "journal"
    _store(directory, T0 + timedelta(days=1), "second")
    _store(directory, T0, "first")
    _store(directory, T0 + timedelta(days=40), "third")
    return Book.load(directory)


def test_book_sorted_oldest_first(book):
    assert [d.entry.body for d in book.entries] == ["first", "second", "third"]
    assert book.last().entry.body == "third"


def test_book_rejects_broken_entry(tmp_path):
    directory = tmp_path / "journal"
    directory.mkdir()
    (directory / "bad.json").write_text("not json")
    with pytest.raises(StoredFileError) as exc:
        Book.load(directory)
    assert "bad.json" in str(exc.value)


def test_new_entry_effects(tmp_path, entry):
    machine = journal.new_entry(entry, tmp_path / "journal", "/repo", FMT)
    d = machine.descriptions
    file_name = entry.at.strftime(FMT)

    assert len(d) == 6
    assert isinstance(d[0], CreateDirectory) and d[0].ok_if_exists
    assert isinstance(d[1], WriteFile)
    assert (d[1].can_create, d[1].can_overwrite) == (True, False)
    assert json.loads(d[1].content)["body"] == entry.body
    assert [x.args[2] for x in d[2:]] == ["add", "commit", "pull", "push"]
    assert d[3].args[-1] == f"feat(journal): add new journal entry {file_name}"
    assert all(not e.forgiving for e in machine)


def test_list_entries_prints_table(book):
    machine = journal.list_entries(book)
    (only,) = machine.descriptions
    assert isinstance(only, PrintToStdOut)
    assert "first" in only.text and "third" in only.text


def test_edit_last_entry(book):
    machine = journal.edit_last_entry(book, "/repo", "vim")
    effects = list(machine)
    editor = effects[0]

    assert isinstance(editor.description, OpenInEditor)
    assert editor.forgiving is True
    assert editor.description.files == (book.location / book.entries[-1].file_name,)
    assert [e.forgiving for e in effects[1:]] == [False] * 4
    assert effects[2].description.args[-1] == (
        f"feat(journal): edit the entry {book.entries[-1].file_name}"
    )


def test_edit_last_entry_without_entries(tmp_path):
    with pytest.raises(NoEntries):
        journal.edit_last_entry(Book(tmp_path), "/repo", "vim")


def test_edit_specific_entries(book):
    """Every entry whose file name contains the specifier is opened."""
    machine = journal.edit_specific_entries(book, "2024-04-1", "/repo", "vim")
    editor = machine.descriptions[0]
    assert len(editor.files) == 2
    assert machine.descriptions[2].args[-1] == "feat(journal): edit the few entries"


def test_edit_specific_no_match(book):
    with pytest.raises(NoEntries):
        journal.edit_specific_entries(book, "1999", "/repo", "vim")


def test_edit_all_entries_stages_directory(book):
    machine = journal.edit_all_entries(book, "/repo", "vim")
    assert len(machine.descriptions[0].files) == 3
    assert machine.descriptions[1].args[3:] == (str(book.location),)


def test_find_entry(book):
    assert journal.find_entry(book, "05-20").entry.body == "third"
    with pytest.raises(AmbiguousEntryMatch):
        journal.find_entry(book, "2024-04")
    with pytest.raises(NoEntries):
        journal.find_entry(book, "1999")


def test_delete_entry_effects(book):
    machine = journal.delete_entry(book, "05-20", "/repo")
    d = machine.descriptions
    assert isinstance(d[0], RemoveFile)
    assert d[0].path == book.location / "2024-05-20-21-00-00.json"
    assert d[2].args[-1] == "feat(journal): delete the entry 2024-05-20-21-00-00.json"


@pytest.mark.asyncio
async def test_new_entry_end_to_end(git_repo, entry):
    """The entry is written, committed and pushed; a second write is refused."""
    quiet = Executor(echo=lambda *a, **k: None)
    journal_dir = git_repo / "journal"

    await journal.new_entry(entry, journal_dir, git_repo, FMT).run_sequential(quiet)

    file_name = entry.at.strftime(FMT)
    stored = Entry.from_json(json.loads((journal_dir / file_name).read_text()))
    assert stored == entry
    assert remote_log(git_repo)[0] == f"feat(journal): add new journal entry {file_name}"

    with pytest.raises(FileAlreadyExists):
        await journal.new_entry(entry, journal_dir, git_repo, FMT).run_sequential(quiet)


def test_preview_truncates():
    desc = EntryDescription(Entry(at=T0, body="x" * 100, mood=Mood.BAD), "f.json")
    assert journal.preview(desc).endswith("x" * 40 + "...")
