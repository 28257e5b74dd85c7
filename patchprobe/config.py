"""Runtime settings resolved from an explicit environment mapping."""

import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

CACHE_NAME = "patchprobe.json"
DEFAULT_TIMEOUT = 2.0
DEFAULT_PREFIX = "patchprobe-private-"


def resolve_cache_path(environ: Mapping[str, str]) -> Path:
    """Locate the cache file.

    PATCHPROBE_CACHE wins, then $XDG_CACHE_HOME, then $HOME/.cache.
    """
    explicit = environ.get("PATCHPROBE_CACHE")
    if explicit:
        return Path(explicit)

    cache_home = environ.get("XDG_CACHE_HOME")
    if cache_home:
        return Path(cache_home) / CACHE_NAME

    home = environ.get("HOME") or str(Path.home())
    return Path(home) / ".cache" / CACHE_NAME


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Seconds to wait for a probe container.")
    package_manager: str = Field("zypper", min_length=1)
    container_prefix: str = DEFAULT_PREFIX
    workers: int = Field(1, ge=1, description="Concurrent probes during a scan.")
    cache_path: Path

    @property
    def check_command(self) -> List[str]:
        """Command whose zero exit means the package manager is present."""
        return ["which", self.package_manager]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values = {"cache_path": resolve_cache_path(env)}
        for key, field in (
            ("PATCHPROBE_TIMEOUT", "timeout"),
            ("PATCHPROBE_PACKAGE_MANAGER", "package_manager"),
            ("PATCHPROBE_CONTAINER_PREFIX", "container_prefix"),
            ("PATCHPROBE_WORKERS", "workers"),
        ):
            if env.get(key):
                values[field] = env[key]
        return cls.model_validate(values)
