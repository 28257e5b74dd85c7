"""Pytest configuration and shared fixtures."""

import itertools
import logging
import time
from typing import Iterator, List

import pytest

from patchprobe.cache import ClassificationCache
from patchprobe.client import EngineClient
from patchprobe.probes import ContainerProbe
from patchprobe.schemas import ContainerHandle, ImageDescriptor

TEST_TIMEOUT = 0.5


class FakeEngineClient(EngineClient):
    """In-memory EngineClient with switches for every failure point."""

    def __init__(
        self,
        create_fail=False,
        start_fail=False,
        log_fail=False,
        command_fail=False,
        wait_fail=False,
        wait_sleep=0.0,
        remove_fail=False,
        list_fail=False,
        list_empty=False,
        failing_images=(),
        wait_delays=None,
    ):
        self.create_fail = create_fail
        self.start_fail = start_fail
        self.log_fail = log_fail
        self.command_fail = command_fail
        self.wait_fail = wait_fail
        self.wait_sleep = wait_sleep
        self.remove_fail = remove_fail
        self.list_fail = list_fail
        self.list_empty = list_empty
        self.failing_images = set(failing_images)
        self.wait_delays = dict(wait_delays or {})
        self.created: List[ContainerHandle] = []
        self.removed: List[str] = []
        self.images_by_container = {}
        self._ids = itertools.count(1)

    def list_images(self) -> List[ImageDescriptor]:
        if self.list_fail:
            raise RuntimeError("Fake list failure")
        if self.list_empty:
            return []
        now = int(time.time())
        return [
            ImageDescriptor(id="1", repo_tags=["opensuse:latest"], created=now, size=254500000),
            ImageDescriptor(id="2", repo_tags=["opensuse:13.2"], created=now, size=254500000),
            ImageDescriptor(id="3", repo_tags=["busybox:latest"], created=now, size=1200000),
            ImageDescriptor(id="4", repo_tags=["registry.local:5000/sles:12"], created=now, size=300000000),
        ]

    def create_container(self, image: str, command: List[str], name: str) -> ContainerHandle:
        if self.create_fail:
            raise RuntimeError("Fake create failure")
        handle = ContainerHandle(id=f"c{next(self._ids)}", name=name)
        self.created.append(handle)
        self.images_by_container[handle.id] = image
        return handle

    def start_container(self, handle: ContainerHandle) -> None:
        if self.start_fail:
            raise RuntimeError("Fake start failure")

    def wait_container(self, handle: ContainerHandle) -> int:
        delay = self.wait_delays.get(self.images_by_container.get(handle.id), self.wait_sleep)
        if delay:
            time.sleep(delay)
        if self.wait_fail:
            raise RuntimeError("Fake wait failure")
        if self.command_fail or self.images_by_container.get(handle.id) in self.failing_images:
            return 1
        return 0

    def remove_container(self, handle: ContainerHandle) -> None:
        if self.remove_fail:
            raise RuntimeError("Fake remove failure")
        self.removed.append(handle.name)

    def stream_logs(self, handle: ContainerHandle, follow: bool = False) -> Iterator[bytes]:
        if self.log_fail:
            raise RuntimeError("Fake log failure")
        return iter([b"streaming buffer initialized\n", b"done\n"])


def probe_records(caplog) -> List[logging.LogRecord]:
    """Log records emitted by patchprobe itself."""
    return [r for r in caplog.records if r.name.startswith("patchprobe")]


@pytest.fixture
def fake_client():
    return FakeEngineClient()


@pytest.fixture
def make_probe():
    def _make(client: EngineClient, timeout: float = TEST_TIMEOUT) -> ContainerProbe:
        return ContainerProbe(client, timeout=timeout)
    return _make


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache" / "patchprobe.json"


@pytest.fixture
def cache(cache_path):
    return ClassificationCache(cache_path)


@pytest.fixture(autouse=True)
def capture_info_logs(caplog):
    caplog.set_level(logging.INFO, logger="patchprobe")
    yield
