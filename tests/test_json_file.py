import json
from unittest.mock import patch

import pytest

from giftradar.db.json_file import JsonDocument
from giftradar.errors import PersistenceCorruptError, PersistenceWriteError


class TestJsonDocumentLoad:
    def test_missing_file_is_created_empty(self, tmp_path):
        path = tmp_path / "data" / "codes.json"
        doc = JsonDocument(path, list)

        assert doc.load() == []
        assert json.loads(path.read_text()) == []

    def test_blank_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("   \n")

        assert JsonDocument(path, dict).load() == {}

    def test_corrupt_file_is_backed_up_and_reset(self, tmp_path):
        path = tmp_path / "codes.json"
        path.write_text("[{\"code\": \"ABC\",")
        doc = JsonDocument(path, list)

        assert doc.load() == []

        backups = list(tmp_path.glob("codes.json.backup-*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "[{\"code\": \"ABC\","
        assert json.loads(path.read_text()) == []

    def test_wrong_top_level_type_is_corrupt(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(PersistenceCorruptError):
            JsonDocument(path, dict).read()

        assert JsonDocument(path, dict).load() == {}


class TestJsonDocumentSave:
    def test_save_round_trips_and_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "codes.json"
        doc = JsonDocument(path, list)

        doc.save([{"code": "ZAŻÓŁĆ"}])

        assert doc.read() == [{"code": "ZAŻÓŁĆ"}]
        assert [p.name for p in tmp_path.iterdir()] == ["codes.json"]

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / "codes.json"
        doc = JsonDocument(path, list)
        doc.save([{"code": "OLD"}])

        with patch("giftradar.db.json_file.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceWriteError):
                doc.save([{"code": "NEW"}])

        assert doc.read() == [{"code": "OLD"}]
        assert [p.name for p in tmp_path.iterdir()] == ["codes.json"]

    def test_unserializable_data_raises_write_error(self, tmp_path):
        doc = JsonDocument(tmp_path / "codes.json", list)

        with pytest.raises(PersistenceWriteError):
            doc.save([object()])


class TestJsonDocumentEncoding:
    def test_non_utf8_file_is_corrupt(self, tmp_path):
        path = tmp_path / "codes.json"
        path.write_bytes(b"[\xff\xfe garbage")

        with pytest.raises(PersistenceCorruptError):
            JsonDocument(path, list).read()

    def test_non_utf8_file_is_backed_up_and_reset(self, tmp_path):
        path = tmp_path / "codes.json"
        path.write_bytes(b"[\xff\xfe garbage")

        assert JsonDocument(path, list).load() == []

        backups = list(tmp_path.glob("codes.json.backup-*"))
        assert len(backups) == 1
        assert backups[0].read_bytes() == b"[\xff\xfe garbage"
        assert json.loads(path.read_text()) == []


class TestJsonDocumentStamp:
    def test_stamp_changes_on_every_save(self, tmp_path):
        doc = JsonDocument(tmp_path / "codes.json", list)
        assert doc.stamp() is None

        doc.save([])
        first = doc.stamp()
        doc.save([])

        assert first is not None
        assert doc.stamp() != first
