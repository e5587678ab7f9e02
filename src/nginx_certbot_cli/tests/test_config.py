"""
Tests for configuration loading and preferences
"""
from pathlib import Path

import pytest
import yaml

from nginx_certbot_cli.lib.config import Config, ConfigError, Preferences, get_config_file

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Ignore overrides from the developer's environment"""
    for name in ("NGINX_CERTBOT_CONFIG", "NGINX_CERTBOT_MODE", "NGINX_CERTBOT_EMAIL_FILE",
                 "NGINX_ROOT", "LETSENCRYPT_DIR"):
        monkeypatch.delenv(name, raising=False)

def test_defaults_when_missing(tmp_path):
    """Test a missing file yields the defaults"""
    config = Config.load(tmp_path / "missing.yaml")

    assert config.certbot_mode == "nginx"
    assert config.nginx_root == Path("/etc/nginx")
    assert config.hsts_max_age == 31536000
    assert config.ip_services[0] == "https://ifconfig.me"

def test_load_yaml(tmp_path):
    """Test values from the YAML file"""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'certbot_mode': "standalone",
        'nginx_root': str(tmp_path / "nginx"),
        'hsts_max_age': 600,
    }))

    config = Config.load(path)

    assert config.certbot_mode == "standalone"
    assert config.nginx_root == tmp_path / "nginx"
    assert isinstance(config.nginx_root, Path)
    assert config.hsts_max_age == 600

def test_env_overrides(tmp_path, monkeypatch):
    """Test environment variables win over the file"""
    path = tmp_path / "config.yaml"
    path.write_text("certbot_mode: nginx\n")
    monkeypatch.setenv("NGINX_CERTBOT_MODE", "standalone")
    monkeypatch.setenv("NGINX_ROOT", str(tmp_path / "etc-nginx"))

    config = Config.load(path)

    assert config.certbot_mode == "standalone"
    assert config.nginx_root == tmp_path / "etc-nginx"

def test_config_file_env(tmp_path, monkeypatch):
    """Test the config path override"""
    monkeypatch.setenv("NGINX_CERTBOT_CONFIG", str(tmp_path / "custom.yaml"))
    assert get_config_file() == tmp_path / "custom.yaml"

@pytest.mark.parametrize("content,message", [
    ("certbot_mode: [unclosed", "Failed to read"),
    ("- just\n- a list\n", "must be a mapping"),
    ("unknown_key: 1\n", "Invalid configuration"),
    ("certbot_mode: webroot\n", "Unsupported certbot mode"),
])
def test_invalid_config(tmp_path, content, message):
    """Test malformed configuration files"""
    path = tmp_path / "config.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError, match=message):
        Config.load(path)

def test_save_round_trip(tmp_path):
    """Test saved values load back and detected values are not persisted"""
    path = tmp_path / "conf" / "config.yaml"
    config = Config(certbot_mode="standalone", letsencrypt_dir=tmp_path / "le", os_family="alpine")

    config.save(path)
    data = yaml.safe_load(path.read_text())
    loaded = Config.load(path)

    assert "os_family" not in data
    assert data['letsencrypt_dir'] == str(tmp_path / "le")
    assert loaded.certbot_mode == "standalone"
    assert loaded.letsencrypt_dir == tmp_path / "le"
    assert loaded.os_family == ""

def test_certificate_paths(config):
    """Test certbot's live and renewal paths"""
    paths = config.get_certificate_paths("app.example.com")

    assert paths['fullchain'] == config.letsencrypt_dir / "live" / "app.example.com" / "fullchain.pem"
    assert paths['privkey'] == config.letsencrypt_dir / "live" / "app.example.com" / "privkey.pem"
    assert config.get_renewal_file("app.example.com") == config.letsencrypt_dir / "renewal" / "app.example.com.conf"

def test_preferences_round_trip(config):
    """Test the last used email persists"""
    preferences = Preferences(config)
    assert preferences.load_last_email() == ""

    assert preferences.save_last_email("admin@example.com") is True
    assert Preferences(config).load_last_email() == "admin@example.com"

def test_preferences_unwritable(tmp_path):
    """Test a failed save is reported, not raised"""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    config = Config(preference_file=blocker / "last_email")

    assert Preferences(config).save_last_email("admin@example.com") is False
