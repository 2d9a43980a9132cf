from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from giftradar.codes.sync import NO_CODES_FOUND, SyncEngine, dedupe_candidates
from giftradar.db.code_store import CodeStore
from giftradar.errors import PersistenceWriteError
from giftradar.models.promo_code import CandidateCode


@pytest.fixture
def store(tmp_path, clock):
    return CodeStore(tmp_path / "codes.json", clock=clock)


def _source(*candidates):
    source = MagicMock()
    source.fetch.return_value = list(candidates)
    return source


def _candidate(code_id, rewards, clock):
    return CandidateCode(
        id=code_id,
        description="test",
        rewards=rewards,
        valid_until=clock.now + timedelta(days=30),
    )


class TestDedupe:
    def test_first_occurrence_wins(self, clock):
        unique = dedupe_candidates(
            [
                _candidate("X", "from first", clock),
                _candidate("Y", "only", clock),
                _candidate("X", "from second", clock),
            ]
        )
        assert [(c.id, c.rewards) for c in unique] == [("X", "from first"), ("Y", "only")]


class TestSyncOnce:
    def test_duplicate_across_sources_enters_delta_once(self, store, clock):
        engine = SyncEngine(
            [
                _source(_candidate("X", "first source", clock)),
                _source(_candidate("X", "second source", clock)),
            ],
            store,
        )

        result = engine.sync_once()

        assert result.success
        assert result.added == 1
        assert [c.id for c in result.new_codes] == ["X"]
        assert store.find_by_id("X").rewards == "first source"

    def test_no_candidates_is_failure_and_store_untouched(self, store, tmp_path):
        engine = SyncEngine([_source(), _source()], store)

        with patch.object(store, "merge") as merge:
            result = engine.sync_once()

        assert not result.success
        assert result.failure_reason == NO_CODES_FOUND
        assert result.added == 0
        merge.assert_not_called()

    def test_nothing_new_is_success(self, store, clock):
        store.merge([_candidate("A", "gems", clock)])
        engine = SyncEngine([_source(_candidate("A", "gems", clock))], store)

        result = engine.sync_once()

        assert result.success
        assert result.added == 0
        assert result.new_codes == []

    def test_second_sync_adds_nothing(self, store, clock):
        engine = SyncEngine(
            [_source(_candidate("A", "gems", clock), _candidate("B", "food", clock))], store
        )

        assert engine.sync_once().added == 2
        assert engine.sync_once().added == 0

    def test_one_failing_source_does_not_block_others(self, store, clock):
        broken = _source()  # a BaseSource swallows its own failure and yields []
        engine = SyncEngine([broken, _source(_candidate("OK", "gems", clock))], store)

        result = engine.sync_once()

        assert result.added == 1
        broken.fetch.assert_called_once()

    def test_store_write_failure_reported(self, store, clock, tmp_path):
        engine = SyncEngine([_source(_candidate("A", "gems", clock))], store)

        with patch.object(
            store.document,
            "save",
            side_effect=PersistenceWriteError(tmp_path / "codes.json", "read-only"),
        ):
            result = engine.sync_once()

        assert not result.success
        assert result.failure_reason.startswith("store write failed")
        assert store.all() == []
