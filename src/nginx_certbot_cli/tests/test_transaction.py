"""
Tests for configuration snapshots and rollback
"""
import os

import pytest

from nginx_certbot_cli.lib.proxy.base import ProxyError
from nginx_certbot_cli.lib.transaction import ConfigTransaction

@pytest.fixture
def site(tmp_path):
    """A config file, its activation symlink and a path that does not exist yet"""
    available = tmp_path / "sites-available"
    enabled = tmp_path / "sites-enabled"
    available.mkdir()
    enabled.mkdir()
    conf = available / "app.example.com.conf"
    conf.write_bytes(b"server {\n    listen 80;\n}\n")
    link = enabled / "app.example.com.conf"
    link.symlink_to(conf)
    return conf, link, available / "new.example.com.conf"

def test_rollback_on_exception_is_byte_identical(site):
    """Test every path returns to its exact prior state"""
    conf, link, missing = site
    original = conf.read_bytes()

    with pytest.raises(RuntimeError):
        with ConfigTransaction([conf, link, missing]):
            conf.write_bytes(b"broken")
            link.unlink()
            missing.write_text("server {}")
            raise RuntimeError("nginx -t failed")

    assert conf.read_bytes() == original
    assert link.is_symlink()
    assert os.readlink(link) == str(conf)
    assert not missing.exists()
    assert sorted(p.name for p in conf.parent.iterdir()) == [conf.name]

def test_exit_without_commit_rolls_back(site):
    """Test leaving the block without commit restores"""
    conf, link, missing = site
    original = conf.read_bytes()

    with ConfigTransaction([conf, link]):
        conf.write_text("changed")

    assert conf.read_bytes() == original

def test_commit_keeps_changes_and_drops_backups(site):
    """Test committed changes survive"""
    conf, link, missing = site

    with ConfigTransaction([conf, link, missing]) as txn:
        backup_dir = txn.backup_dir
        assert txn.snapshots[0].backup.read_bytes() == conf.read_bytes()
        conf.write_text("changed")
        missing.write_text("new")
        txn.commit()

    assert conf.read_text() == "changed"
    assert missing.read_text() == "new"
    assert not backup_dir.exists()

def test_rollback_restores_removed_file(site):
    """Test a deleted file comes back"""
    conf, link, missing = site
    original = conf.read_bytes()

    with ConfigTransaction([conf]) as txn:
        conf.unlink()
        txn.rollback()

    assert conf.read_bytes() == original

def test_rollback_restores_renamed_file(tmp_path):
    """Test an Alpine-style rename is undone"""
    conf = tmp_path / "app.example.com.conf"
    disabled = tmp_path / "app.example.com.conf.disabled"
    conf.write_text("server {}")

    with ConfigTransaction([conf, disabled]) as txn:
        conf.rename(disabled)
        txn.rollback()

    assert conf.read_text() == "server {}"
    assert not disabled.exists()

def test_rollback_runs_once(site):
    """Test an explicit rollback is not repeated on exit"""
    conf, link, missing = site

    with ConfigTransaction([conf]) as txn:
        conf.write_text("changed")
        txn.rollback()
        conf.write_text("after rollback")

    assert conf.read_text() == "after rollback"

def test_rollback_failure_reports_paths(site):
    """Test an unrestorable path raises with the path listed"""
    conf, link, missing = site

    txn = ConfigTransaction([conf])
    with txn:
        conf.write_text("changed")
        txn.snapshots[0].backup.unlink()
        with pytest.raises(ProxyError, match="manual intervention") as exc_info:
            txn.rollback()

    assert str(conf) in exc_info.value.output

def test_backups_stay_out_of_include_directories(site):
    """Test no backup is written next to the config or its link"""
    conf, link, missing = site

    with ConfigTransaction([conf, link]) as txn:
        assert txn.backup_dir not in (conf.parent, link.parent)
        assert txn.snapshots[0].backup.parent == txn.backup_dir
        assert sorted(p.name for p in conf.parent.iterdir()) == [conf.name]
        assert sorted(p.name for p in link.parent.iterdir()) == [link.name]
        conf.write_text("changed")

    assert conf.read_text() == "server {\n    listen 80;\n}\n"

def test_same_name_in_two_directories(tmp_path):
    """Test files sharing a name get separate backups"""
    first = tmp_path / "a" / "site.conf"
    second = tmp_path / "b" / "site.conf"
    for path, content in ((first, "first"), (second, "second")):
        path.parent.mkdir()
        path.write_text(content)

    with ConfigTransaction([first, second]):
        first.write_text("changed")
        second.write_text("changed")

    assert first.read_text() == "first"
    assert second.read_text() == "second"
