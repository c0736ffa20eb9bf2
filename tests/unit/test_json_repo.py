import json

from core.storage.json_repo import JsonStateRepository


def test_missing_file_reads_none(tmp_path):
    repo = JsonStateRepository(tmp_path / "absent.json")
    assert repo.read() is None
    assert repo.read_text() is None


def test_write_then_read(tmp_path):
    repo = JsonStateRepository(tmp_path / "s.json")
    repo.write({"a": 1}, 3)
    persisted = repo.read()
    assert persisted.state == {"a": 1}
    assert persisted.version == 3
    assert repo.last_written_text == repo.read_text()


def test_missing_version_is_zero(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"state": {"x": True}}), encoding="utf-8")
    assert JsonStateRepository(path).read().version == 0


def test_unexpected_shape_is_ignored(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    repo = JsonStateRepository(path)
    assert repo.read() is None
    assert path.with_suffix(".corrupt.json").exists()


def test_identical_write_is_skipped(tmp_path):
    repo = JsonStateRepository(tmp_path / "s.json")
    repo.write({"a": 1}, 1)
    repo.write({"a": 1}, 1)
    assert list(tmp_path.glob("*.bak.json")) == []


def test_backup_on_change(tmp_path):
    repo = JsonStateRepository(tmp_path / "s.json", backup_keep=2)
    repo.write({"a": 1}, 1)
    repo.write({"a": 2}, 1)
    backups = list(tmp_path.glob("s.*.bak.json"))
    assert len(backups) == 1
    assert json.loads(backups[0].read_text(encoding="utf-8"))["state"] == {"a": 1}


def test_backups_disabled(tmp_path):
    repo = JsonStateRepository(tmp_path / "s.json", backup_enabled=False)
    repo.write({"a": 1}, 1)
    repo.write({"a": 2}, 1)
    assert list(tmp_path.glob("*.bak.json")) == []


def test_creates_parent_dir(tmp_path):
    repo = JsonStateRepository(tmp_path / "nested" / "dir" / "s.json")
    repo.write({}, 1)
    assert (tmp_path / "nested" / "dir" / "s.json").exists()
