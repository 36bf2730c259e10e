"""Tests for the key-value state store and the summary archive."""

import json
from datetime import datetime, timezone

from models import ArchiveEntry
from store import ARCHIVE_KEY, AppState, Archive, Store, decode_archive, encode_archive


class TestArchive:
    def test_add_then_list(self, store):
        archive = Archive(store, "42")
        entry = archive.add("Sixty words of summary.", "https://example.com/a")

        entries = archive.entries()
        assert entries[0] == entry
        assert entries[0].summary == "Sixty words of summary."
        assert entries[0].url == "https://example.com/a"
        assert entries[0].id
        assert entries[0].timestamp.tzinfo is not None

    def test_newest_first_with_unique_ids(self, store):
        archive = Archive(store, "42")
        first = archive.add("first", "https://example.com/1")
        second = archive.add("second", "https://example.com/2")
        third = archive.add("third", "")

        entries = archive.entries()
        assert [e.summary for e in entries] == ["third", "second", "first"]
        assert len({first.id, second.id, third.id}) == 3

    def test_remove(self, store):
        archive = Archive(store, "42")
        keep = archive.add("keep", "https://example.com/keep")
        drop = archive.add("drop", "https://example.com/drop")

        assert archive.remove(drop.id) is True
        ids = [e.id for e in archive.entries()]
        assert drop.id not in ids
        assert ids == [keep.id]

    def test_remove_unknown_id(self, store):
        archive = Archive(store, "42")
        archive.add("only", "https://example.com/only")

        assert archive.remove("missing") is False
        assert len(archive.entries()) == 1

    def test_archives_are_per_namespace(self, store):
        Archive(store, "1").add("chat one", "")
        assert Archive(store, "2").entries() == []

    def test_survives_reopening_the_database(self, tmp_path):
        path = str(tmp_path / "reopen.db")
        entry = Archive(Store(path), "42").add("persisted", "https://example.com/p")

        assert Archive(Store(path), "42").entries() == [entry]

    def test_corrupt_archive_reads_as_empty(self, store):
        store.set("42", ARCHIVE_KEY, "{not json")
        archive = Archive(store, "42")

        assert archive.entries() == []
        archive.add("fresh start", "")
        assert [e.summary for e in archive.entries()] == ["fresh start"]

    def test_wrong_shape_reads_as_empty(self, store):
        store.set("42", ARCHIVE_KEY, json.dumps({"summary": "not a list"}))
        assert Archive(store, "42").entries() == []


class TestSerialization:
    def test_round_trip(self, store):
        archive = Archive(store, "42")
        for n in range(3):
            archive.add(f"summary {n}", f"https://example.com/{n}")

        raw = store.get("42", ARCHIVE_KEY)
        reloaded = decode_archive(raw)

        assert reloaded == archive.entries()
        assert json.loads(encode_archive(reloaded)) == json.loads(raw)

    def test_decodes_javascript_timestamps(self):
        raw = json.dumps([{
            "id": "1714564800000",
            "summary": "From the old web app.",
            "url": "https://example.com/old",
            "timestamp": "2024-05-01T12:00:00.000Z",
        }])

        [entry] = decode_archive(raw)

        assert entry.id == "1714564800000"
        assert entry.timestamp == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_naive_timestamps_are_utc(self):
        entry = ArchiveEntry.from_dict({"id": "a", "summary": "s", "url": "", "timestamp": "2024-05-01T12:00:00"})
        assert entry.timestamp.tzinfo == timezone.utc


class TestAppState:
    def test_defaults_for_new_namespace(self, store):
        state = store.load_state("new-chat")
        assert state == AppState()

    def test_save_and_load(self, store):
        entry = ArchiveEntry("abc123", "saved summary", "https://example.com", datetime(2024, 5, 1, tzinfo=timezone.utc))
        store.save_state("42", AppState(api_key="sk-test", archive=[entry], compact_mode=True))

        state = store.load_state("42")

        assert state.api_key == "sk-test"
        assert state.compact_mode is True
        assert state.archive == [entry]

    def test_state_and_archive_share_storage(self, store):
        store.save_state("42", AppState(api_key="sk-test"))
        Archive(store, "42").add("added later", "")

        state = store.load_state("42")
        assert state.api_key == "sk-test"
        assert [e.summary for e in state.archive] == ["added later"]
