"""
Shared fixtures: a throwaway nginx/letsencrypt tree and a fake command runner
"""
import subprocess
from unittest.mock import patch

import pytest

from nginx_certbot_cli.lib.config import Config
from nginx_certbot_cli.lib.factory import create_manager
from nginx_certbot_cli.lib.proxy.nginx import NginxProxy


class FakeRunner:
    """Stands in for subprocess.run, recording every command line"""

    def __init__(self):
        self.calls = []
        self.failures = []
        self.nginx_version = "1.24.0"

    def fail(self, *prefix, output="command failed", returncode=1):
        """Make commands starting with prefix fail"""
        self.failures.append((tuple(prefix), returncode, output))

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        for prefix, returncode, output in self.failures:
            if tuple(cmd[:len(prefix)]) == prefix:
                return subprocess.CompletedProcess(cmd, returncode, "", output)
        if cmd[:2] == ["nginx", "-v"]:
            return subprocess.CompletedProcess(cmd, 0, "", f"nginx version: nginx/{self.nginx_version}")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    def commands(self, program):
        return [cmd for cmd in self.calls if cmd[0] == program]


@pytest.fixture
def runner():
    """Fake subprocess.run; nginx reports itself running and every command succeeds"""
    fake = FakeRunner()
    with patch('subprocess.run', side_effect=fake), \
         patch('nginx_certbot_cli.lib.proxy.nginx.nginx.is_port_in_use', return_value=False):
        yield fake


@pytest.fixture
def config(tmp_path):
    """Debian-family configuration rooted in a temporary directory"""
    return Config(
        nginx_root=tmp_path / "nginx",
        letsencrypt_dir=tmp_path / "letsencrypt",
        preference_file=tmp_path / "last_email",
        os_family="debian",
        package_manager="apt-get"
    )


@pytest.fixture
def alpine_config(tmp_path):
    """Alpine-family configuration rooted in a temporary directory"""
    return Config(
        nginx_root=tmp_path / "nginx",
        letsencrypt_dir=tmp_path / "letsencrypt",
        preference_file=tmp_path / "last_email",
        os_family="alpine",
        package_manager="apk"
    )


@pytest.fixture
def proxy(config):
    return NginxProxy(config)


@pytest.fixture
def manager(config):
    return create_manager(config)
