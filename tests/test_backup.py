from datetime import datetime

import pytest

import csv_replace.backup as backup_module
from csv_replace.backup import backup_path_for, create_backup
from csv_replace.errors import BackupError

WHEN = datetime(2024, 1, 2, 3, 4, 5)


def test_backup_name_has_second_resolution_timestamp(tmp_path):
    target = tmp_path / "app.conf"
    assert backup_path_for(str(target), now=WHEN) == tmp_path / "app.conf.bak.20240102030405"
    assert backup_path_for(str(target), now=WHEN, suffix="orig").name == "app.conf.orig.20240102030405"


def test_create_backup_copies_bytes(tmp_path):
    target = tmp_path / "app.conf"
    target.write_bytes(b"a\r\nb\x00c")
    dest = create_backup(str(target), now=WHEN)
    assert dest.read_bytes() == b"a\r\nb\x00c"
    assert target.read_bytes() == b"a\r\nb\x00c"


def test_existing_backup_is_never_overwritten(tmp_path):
    target = tmp_path / "app.conf"
    target.write_text("first", encoding="utf-8")
    first = create_backup(str(target), now=WHEN)
    target.write_text("second", encoding="utf-8")
    second = create_backup(str(target), now=WHEN)

    assert second.name == "app.conf.bak.20240102030405.1"
    assert first.read_text(encoding="utf-8") == "first"
    assert second.read_text(encoding="utf-8") == "second"


def test_copy_failure_raises(tmp_path):
    with pytest.raises(BackupError):
        create_backup(str(tmp_path / "missing.conf"), now=WHEN)


def test_name_taken_after_check_is_not_overwritten(tmp_path, monkeypatch):
    target = tmp_path / "app.conf"
    target.write_text("new", encoding="utf-8")
    taken = tmp_path / "app.conf.bak.20240102030405"
    taken.write_text("earlier run", encoding="utf-8")
    # the name check already happened and missed the other run's file
    monkeypatch.setattr(backup_module, "backup_path_for", lambda *a, **kw: taken)

    dest = create_backup(str(target), now=WHEN)

    assert dest.name == "app.conf.bak.20240102030405.1"
    assert taken.read_text(encoding="utf-8") == "earlier run"
    assert dest.read_text(encoding="utf-8") == "new"
