"""
Tests for lifecycle operations on managed proxies
"""
import tempfile
from unittest.mock import patch

import pytest

from nginx_certbot_cli.lib.proxy.base import ProxyConfig, ProxyError
from nginx_certbot_cli.lib.cert.base import CertificateError
from nginx_certbot_cli.lib.factory import create_manager
from nginx_certbot_cli.lib.proxy.nginx.nginxconf import MARKER
from nginx_certbot_cli.lib.transaction import ConfigTransaction

DOMAIN = "app.example.com"

@pytest.fixture
def managed(manager, runner):
    """A served HTTP proxy for app.example.com"""
    manager.stage_http(ProxyConfig(domains=[DOMAIN], target="http://127.0.0.1:8080"))
    runner.calls.clear()
    return manager

@pytest.fixture
def managed_tls(managed, runner):
    """The same proxy after its certificate was installed"""
    managed.proxy.write_config(ProxyConfig(domains=[DOMAIN], target="http://127.0.0.1:8080"), tls=True)
    runner.calls.clear()
    return managed

@pytest.fixture
def alpine_managed(alpine_config, runner):
    """A served HTTP proxy for app.example.com on an Alpine layout"""
    manager = create_manager(alpine_config)
    manager.stage_http(ProxyConfig(domains=[DOMAIN], target="http://127.0.0.1:8080"))
    runner.calls.clear()
    return manager

@pytest.fixture
def backup_root(tmp_path, monkeypatch):
    """Directory receiving transaction backups"""
    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root

def test_stage_http(manager, runner):
    """Test staging writes, links, validates and applies"""
    path = manager.stage_http(ProxyConfig(domains=[DOMAIN, "www.app.example.com"], target="http://127.0.0.1:8080"))

    assert "proxy_pass http://127.0.0.1:8080;" in path.read_text()
    assert manager.proxy.is_active(DOMAIN)
    assert ["nginx", "-t"] in runner.calls
    assert ["nginx", "-s", "reload"] in runner.calls

def test_discovery_only_lists_marked_configs(managed, config):
    """Test hand-written configs are ignored"""
    other = managed.proxy.dirs['available'] / "handmade.example.com.conf"
    other.write_text("server { listen 80; }")

    assert managed.list_domains() == [DOMAIN]
    proxies = managed.discover()
    assert len(proxies) == 1
    assert proxies[0].target == "http://127.0.0.1:8080"

def test_discovery_includes_paused(managed):
    """Test paused configs are still discovered"""
    managed.toggle(DOMAIN)

    assert managed.list_domains() == [DOMAIN]
    assert managed.discover()[0].enabled is False

def test_get_unknown_domain(manager, runner):
    """Test lookups of unmanaged domains"""
    with pytest.raises(ProxyError, match="No managed configuration"):
        manager.get("unknown.example.com")

def test_toggle_round_trip(managed, runner):
    """Test disable then enable restores the served state"""
    original = managed.proxy.available_path(DOMAIN).read_bytes()

    assert managed.toggle(DOMAIN) is False
    assert not managed.proxy.enabled_path(DOMAIN).exists()

    assert managed.toggle(DOMAIN) is True
    assert managed.proxy.enabled_path(DOMAIN).is_symlink()
    assert managed.proxy.available_path(DOMAIN).read_bytes() == original
    assert runner.calls.count(["nginx", "-s", "reload"]) == 2

def test_toggle_refuses_invalid_global_config(managed, runner):
    """Test toggling is refused while nginx -t already fails"""
    runner.fail("nginx", "-t", output="emerg")

    with pytest.raises(ProxyError, match="already invalid"):
        managed.toggle(DOMAIN)
    assert managed.proxy.is_active(DOMAIN)

def test_toggle_rolls_back_on_apply_failure(managed, runner):
    """Test a failed reload restores the link and re-applies"""
    runner.fail("nginx", "-s", "reload", output="reload failed")

    with pytest.raises(ProxyError):
        managed.toggle(DOMAIN)

    assert managed.proxy.enabled_path(DOMAIN).is_symlink()
    assert runner.calls.count(["nginx", "-s", "reload"]) == 2

def test_set_enabled_noop(managed, runner):
    """Test requesting the current state changes nothing"""
    assert managed.set_enabled(DOMAIN, True) is False
    assert ["nginx", "-s", "reload"] not in runner.calls

def test_modify_target(managed, runner):
    """Test retargeting rewrites proxy_pass and reloads"""
    previous = managed.modify_target(DOMAIN, "http://127.0.0.1:9000")

    assert previous == "http://127.0.0.1:8080"
    content = managed.proxy.available_path(DOMAIN).read_text()
    assert "proxy_pass http://127.0.0.1:9000;" in content
    assert ["nginx", "-s", "reload"] in runner.calls

def test_modify_target_rolls_back_on_invalid_config(managed, runner):
    """Test nginx -t failure restores the exact file"""
    original = managed.proxy.available_path(DOMAIN).read_bytes()
    runner.fail("nginx", "-t", output="host not found in upstream")

    with pytest.raises(ProxyError) as exc_info:
        managed.modify_target(DOMAIN, "http://nowhere:9000")

    assert "host not found" in exc_info.value.output
    assert managed.proxy.available_path(DOMAIN).read_bytes() == original
    assert ["nginx", "-s", "reload"] not in runner.calls

def test_modify_target_paused_skips_reload(managed, runner):
    """Test a paused config is validated but not applied"""
    managed.toggle(DOMAIN)
    runner.calls.clear()

    managed.modify_target(DOMAIN, "http://127.0.0.1:9000")

    assert ["nginx", "-t"] in runner.calls
    assert ["nginx", "-s", "reload"] not in runner.calls

def test_enable_hsts(managed_tls, config):
    """Test HSTS is added once"""
    assert managed_tls.enable_hsts(DOMAIN) is True
    content = managed_tls.proxy.available_path(DOMAIN).read_text()
    assert f'add_header Strict-Transport-Security "max-age={config.hsts_max_age}" always;' in content

    assert managed_tls.enable_hsts(DOMAIN) is False
    assert managed_tls.proxy.available_path(DOMAIN).read_text() == content

def test_enable_hsts_without_certificate(managed):
    """Test HSTS on an HTTP-only config is refused untouched"""
    original = managed.proxy.available_path(DOMAIN).read_bytes()

    with pytest.raises(ProxyError, match="ssl_certificate_key"):
        managed.enable_hsts(DOMAIN)
    assert managed.proxy.available_path(DOMAIN).read_bytes() == original

def test_remove(managed, runner):
    """Test removal deletes files and reloads"""
    removed = managed.remove(DOMAIN)

    assert len(removed) == 2
    assert managed.list_domains() == []
    assert ["nginx", "-s", "reload"] in runner.calls

def test_delete_certificate_without_certbot(managed):
    """Test deletion is skipped when certbot is absent"""
    with patch('nginx_certbot_cli.lib.cert.certbot.command_exists', return_value=False):
        assert managed.delete_certificate(DOMAIN) is False

def test_delete_certificate_failure(managed, runner):
    """Test certbot failures propagate"""
    runner.fail("certbot", output="No certificate found with name app.example.com")
    with patch('nginx_certbot_cli.lib.cert.certbot.command_exists', return_value=True):
        with pytest.raises(CertificateError):
            managed.delete_certificate(DOMAIN)

def test_renew_reloads_after_real_renewal(managed, runner):
    """Test nginx is reloaded only after a real renewal"""
    assert managed.renew(DOMAIN, dry_run=True) is None
    assert ["nginx", "-s", "reload"] not in runner.calls

    status = managed.renew(DOMAIN)
    assert status.action == "reloaded"

def test_restore_after_failed_creation(manager, runner):
    """Test restore removes a staged config and reloads"""
    with ConfigTransaction(manager.proxy.config_paths(DOMAIN)) as txn:
        manager.stage_http(ProxyConfig(domains=[DOMAIN], target="http://127.0.0.1:8080"))
        assert manager.restore(txn) is None

    assert manager.proxy.find_config_file(DOMAIN) is None
    assert not manager.proxy.enabled_path(DOMAIN).is_symlink()

def test_enabled_dir_file_is_not_managed(manager, runner):
    """Test a marked file living only in sites-enabled is neither listed nor touched"""
    stray = manager.proxy.enabled_path(DOMAIN)
    stray.parent.mkdir(parents=True)
    stray.write_text(f"# {MARKER}\nserver {{ listen 80; }}\n")

    assert manager.list_domains() == []
    with pytest.raises(ProxyError, match="No managed configuration"):
        manager.get(DOMAIN)
    with pytest.raises(ProxyError, match="No managed configuration"):
        manager.toggle(DOMAIN)
    assert stray.read_text().startswith(f"# {MARKER}")

def test_toggle_keeps_regular_enabled_file(managed, runner):
    """Test pausing fails without deleting a regular file that shadows the link"""
    conf = managed.proxy.available_path(DOMAIN)
    enabled = managed.proxy.enabled_path(DOMAIN)
    enabled.unlink()
    enabled.write_bytes(conf.read_bytes())

    with pytest.raises(ProxyError, match="refusing to delete"):
        managed.toggle(DOMAIN)

    assert enabled.is_file() and not enabled.is_symlink()
    assert enabled.read_bytes() == conf.read_bytes()
    assert ["nginx", "-s", "reload"] not in runner.calls

def test_enable_hsts_rolls_back_on_invalid_config(managed_tls, runner, backup_root):
    """Test nginx -t failure leaves the TLS config byte-identical"""
    conf = managed_tls.proxy.available_path(DOMAIN)
    original = conf.read_bytes()
    runner.fail("nginx", "-t", output="duplicate \"add_header\" directive")

    with pytest.raises(ProxyError):
        managed_tls.enable_hsts(DOMAIN)

    assert conf.read_bytes() == original
    assert [p.name for p in conf.parent.iterdir()] == [conf.name]
    assert list(backup_root.iterdir()) == []
    assert ["nginx", "-s", "reload"] not in runner.calls

def test_enable_hsts_rolls_back_on_reload_failure(managed_tls, runner, backup_root):
    """Test a failed reload restores the file and re-applies it"""
    conf = managed_tls.proxy.available_path(DOMAIN)
    original = conf.read_bytes()
    runner.fail("nginx", "-s", "reload", output="signal process failed")

    with pytest.raises(ProxyError, match="manual intervention"):
        managed_tls.enable_hsts(DOMAIN)

    assert conf.read_bytes() == original
    assert [p.name for p in conf.parent.iterdir()] == [conf.name]
    assert list(backup_root.iterdir()) == []
    assert runner.calls.count(["nginx", "-s", "reload"]) == 2

def test_alpine_toggle_round_trip(alpine_managed, runner):
    """Test pausing renames to .conf.disabled and resuming renames back"""
    proxy = alpine_managed.proxy
    original = proxy.available_path(DOMAIN).read_bytes()

    assert alpine_managed.toggle(DOMAIN) is False
    assert not proxy.available_path(DOMAIN).exists()
    assert proxy.disabled_path(DOMAIN).read_bytes() == original
    assert alpine_managed.list_domains() == [DOMAIN]

    assert alpine_managed.toggle(DOMAIN) is True
    assert proxy.available_path(DOMAIN).read_bytes() == original
    assert not proxy.disabled_path(DOMAIN).exists()
    assert runner.calls.count(["rc-service", "nginx", "start"]) == 0

def test_alpine_toggle_rolls_back_on_reload_failure(alpine_managed, runner, backup_root):
    """Test a failed reload undoes the rename"""
    proxy = alpine_managed.proxy
    original = proxy.available_path(DOMAIN).read_bytes()
    runner.fail("nginx", "-s", "reload", output="signal process failed")

    with pytest.raises(ProxyError):
        alpine_managed.toggle(DOMAIN)

    assert proxy.available_path(DOMAIN).read_bytes() == original
    assert not proxy.disabled_path(DOMAIN).exists()
    assert [p.name for p in proxy.dirs['available'].iterdir()] == [proxy.available_path(DOMAIN).name]
    assert list(backup_root.iterdir()) == []

def test_alpine_resume_rolls_back_on_reload_failure(alpine_managed, runner):
    """Test a failed resume leaves the config paused"""
    proxy = alpine_managed.proxy
    alpine_managed.toggle(DOMAIN)
    paused = proxy.disabled_path(DOMAIN).read_bytes()
    runner.fail("nginx", "-s", "reload", output="signal process failed")

    with pytest.raises(ProxyError):
        alpine_managed.toggle(DOMAIN)

    assert proxy.disabled_path(DOMAIN).read_bytes() == paused
    assert not proxy.available_path(DOMAIN).exists()
    assert proxy.is_active(DOMAIN) is False

def test_alpine_modify_target_rolls_back_on_invalid_config(alpine_managed, runner, backup_root):
    """Test nginx -t failure restores the Alpine config exactly"""
    proxy = alpine_managed.proxy
    original = proxy.available_path(DOMAIN).read_bytes()
    runner.fail("nginx", "-t", output="host not found in upstream")

    with pytest.raises(ProxyError):
        alpine_managed.modify_target(DOMAIN, "http://nowhere:9000")

    assert proxy.available_path(DOMAIN).read_bytes() == original
    assert not proxy.disabled_path(DOMAIN).exists()
    assert list(backup_root.iterdir()) == []

def test_alpine_modify_paused_target_rolls_back(alpine_managed, runner):
    """Test a paused Alpine config is restored in place on nginx -t failure"""
    proxy = alpine_managed.proxy
    alpine_managed.toggle(DOMAIN)
    paused = proxy.disabled_path(DOMAIN).read_bytes()
    runner.fail("nginx", "-t", output="host not found in upstream")

    with pytest.raises(ProxyError):
        alpine_managed.modify_target(DOMAIN, "http://nowhere:9000")

    assert proxy.disabled_path(DOMAIN).read_bytes() == paused
    assert not proxy.available_path(DOMAIN).exists()
