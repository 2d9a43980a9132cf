import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from giftradar.db.code_store import CodeStore
from giftradar.errors import CodeAlreadyExistsError, PersistenceWriteError
from giftradar.models.promo_code import CandidateCode


@pytest.fixture
def codes_path(tmp_path):
    return tmp_path / "codes.json"


@pytest.fixture
def store(codes_path, clock):
    return CodeStore(codes_path, clock=clock)


def _candidate(code_id, days=1, clock_now=None, rewards="100 gems"):
    now = clock_now or datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
    return CandidateCode(
        id=code_id,
        description="Promotional code from test",
        rewards=rewards,
        valid_until=now + timedelta(days=days),
    )


class TestAdd:
    def test_add_assigns_seven_day_validity(self, store, clock):
        code = store.add("KINGSHOT2025")

        assert code.id == "KINGSHOT2025"
        assert code.valid_until == clock.now + timedelta(days=7)
        assert code.description == "Promotional code: KINGSHOT2025"
        assert code.rewards == "Reward for promotional code"

    def test_add_persists_snapshot(self, store, codes_path):
        store.add("ABC", "Launch gift")

        data = json.loads(codes_path.read_text())
        assert data[0]["code"] == "ABC"
        assert data[0]["description"] == "Launch gift"
        assert "validUntil" in data[0]

    def test_duplicate_add_raises(self, store):
        first = store.add("ABC")

        with pytest.raises(CodeAlreadyExistsError) as exc_info:
            store.add("ABC")

        assert exc_info.value.existing == first
        assert len(store.all()) == 1

    def test_ids_are_case_sensitive(self, store):
        store.add("abc")
        store.add("ABC")
        assert {c.id for c in store.all()} == {"abc", "ABC"}

    def test_empty_code_rejected(self, store):
        with pytest.raises(ValueError):
            store.add("   ")

    def test_write_failure_propagates_and_keeps_state(self, store, codes_path):
        store.add("KEEP")

        with patch.object(
            store.document, "save", side_effect=PersistenceWriteError(codes_path, "disk full")
        ):
            with pytest.raises(PersistenceWriteError):
                store.add("LOST")

        assert store.find_by_id("LOST") is None
        assert [c["code"] for c in json.loads(codes_path.read_text())] == ["KEEP"]


class TestMerge:
    def test_merge_is_idempotent(self, store):
        batch = [_candidate("A"), _candidate("B")]

        first = store.merge(batch)
        second = store.merge(batch)

        assert [c.id for c in first.added_codes] == ["A", "B"]
        assert second.added_codes == []
        assert len(store.all()) == 2

    def test_merge_skips_existing_ids(self, store):
        store.add("A")

        delta = store.merge([_candidate("A", rewards="other"), _candidate("C")])

        assert [c.id for c in delta.added_codes] == ["C"]
        # stored metadata of A is untouched
        assert store.find_by_id("A").rewards == "Reward for promotional code"

    def test_merge_dedupes_within_batch(self, store):
        delta = store.merge([_candidate("X", rewards="first"), _candidate("X", rewards="second")])

        assert len(delta.added_codes) == 1
        assert store.find_by_id("X").rewards == "first"

    def test_merge_writes_once(self, store):
        with patch.object(store.document, "save", wraps=store.document.save) as save:
            store.merge([_candidate("A"), _candidate("B"), _candidate("C")])
        save.assert_called_once()

    def test_merge_with_nothing_new_does_not_write(self, store):
        store.merge([_candidate("A")])
        with patch.object(store.document, "save") as save:
            store.merge([_candidate("A")])
        save.assert_not_called()

    def test_merge_write_failure_is_all_or_nothing(self, store, codes_path):
        with patch.object(
            store.document, "save", side_effect=PersistenceWriteError(codes_path, "disk full")
        ):
            with pytest.raises(PersistenceWriteError):
                store.merge([_candidate("A"), _candidate("B")])

        assert store.all() == []
        assert store.merge([_candidate("A")]).added_codes[0].id == "A"


class TestPersistence:
    def test_reload_from_disk(self, codes_path, clock):
        CodeStore(codes_path, clock=clock).add("PERSISTED")

        reopened = CodeStore(codes_path, clock=clock)
        assert reopened.exists("PERSISTED")

    def test_loads_legacy_file_format(self, codes_path, clock):
        codes_path.write_text(
            json.dumps(
                [
                    {
                        "code": "KINGSHOT2023",
                        "description": "Promotional code for 1000 coins",
                        "validUntil": "2025-06-08T09:00:00.000Z",
                        "rewards": "1000 coins",
                    },
                    {"code": "BROKEN"},
                ]
            )
        )

        store = CodeStore(codes_path, clock=clock)

        code = store.find_by_id("KINGSHOT2023")
        assert code.valid_until == datetime(2025, 6, 8, 9, 0, tzinfo=timezone.utc)
        assert store.find_by_id("BROKEN") is None

    def test_corrupt_file_starts_empty(self, codes_path, clock):
        codes_path.write_text("{not json")

        store = CodeStore(codes_path, clock=clock)

        assert store.all() == []
        assert list(codes_path.parent.glob("codes.json.backup-*"))

    def test_malformed_entries_backed_up_before_rewrite(self, codes_path, clock):
        codes_path.write_text(
            json.dumps(
                [
                    {"code": "GOOD", "validUntil": "2025-06-08T09:00:00.000Z"},
                    {"code": "BROKEN"},
                ]
            )
        )
        store = CodeStore(codes_path, clock=clock)
        assert list(codes_path.parent.glob("codes.json.backup-*")) == []

        store.add("NEW")

        backups = list(codes_path.parent.glob("codes.json.backup-*"))
        assert len(backups) == 1
        assert {"code": "BROKEN"} in json.loads(backups[0].read_text())

        store.add("NEWER")
        assert len(list(codes_path.parent.glob("codes.json.backup-*"))) == 1


class TestSharedFile:
    def test_merge_keeps_code_added_by_other_instance(self, codes_path, clock):
        server = CodeStore(codes_path, clock=clock)
        cli = CodeStore(codes_path, clock=clock)

        cli.add("MANUAL1")
        server.merge([_candidate("SCRAPED")])

        stored = [c["code"] for c in json.loads(codes_path.read_text())]
        assert stored == ["MANUAL1", "SCRAPED"]

    def test_lookup_sees_code_added_by_other_instance(self, codes_path, clock):
        server = CodeStore(codes_path, clock=clock)
        cli = CodeStore(codes_path, clock=clock)

        cli.add("MANUAL1")

        assert server.exists("MANUAL1")
        assert [c.id for c in server.all()] == ["MANUAL1"]

    def test_duplicate_detected_across_instances(self, codes_path, clock):
        server = CodeStore(codes_path, clock=clock)
        cli = CodeStore(codes_path, clock=clock)
        server.merge([_candidate("A")])

        with pytest.raises(CodeAlreadyExistsError):
            cli.add("A")
