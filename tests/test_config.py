"""Tests for settings and cache path resolution."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from patchprobe.config import DEFAULT_TIMEOUT, Settings, resolve_cache_path


class TestResolveCachePath:
    def test_xdg_cache_home(self):
        assert resolve_cache_path({"XDG_CACHE_HOME": "/tmp/xdg", "HOME": "/home/u"}) == Path("/tmp/xdg/patchprobe.json")

    def test_falls_back_to_home(self):
        assert resolve_cache_path({"HOME": "/home/u"}) == Path("/home/u/.cache/patchprobe.json")

    def test_empty_xdg_is_ignored(self):
        assert resolve_cache_path({"XDG_CACHE_HOME": "", "HOME": "/home/u"}) == Path("/home/u/.cache/patchprobe.json")

    def test_explicit_override(self):
        env = {"PATCHPROBE_CACHE": "/srv/cache.json", "XDG_CACHE_HOME": "/tmp/xdg"}
        assert resolve_cache_path(env) == Path("/srv/cache.json")


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({"HOME": "/home/u"})

        assert settings.timeout == DEFAULT_TIMEOUT
        assert settings.package_manager == "zypper"
        assert settings.check_command == ["which", "zypper"]
        assert settings.container_prefix == "patchprobe-private-"
        assert settings.workers == 1

    def test_overrides(self):
        settings = Settings.from_env({
            "HOME": "/home/u",
            "PATCHPROBE_TIMEOUT": "7.5",
            "PATCHPROBE_PACKAGE_MANAGER": "apt-get",
            "PATCHPROBE_WORKERS": "3",
        })

        assert settings.timeout == 7.5
        assert settings.check_command == ["which", "apt-get"]
        assert settings.workers == 3

    def test_invalid_timeout_rejected(self):
        with pytest.raises(ValidationError):
            Settings.from_env({"HOME": "/home/u", "PATCHPROBE_TIMEOUT": "0"})
