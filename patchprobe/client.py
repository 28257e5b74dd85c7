"""Engine client abstraction and the docker SDK backend.

The probe, runner and scanner only talk to :class:`EngineClient`. The real
backend is :class:`DockerEngineClient`; tests provide their own subclass.
One instance is created by the caller and passed in explicitly.
"""

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

import docker
from docker import DockerClient
from docker.models.containers import Container

from patchprobe.schemas import ContainerHandle, ImageDescriptor


class EngineClient(ABC):
    """Capability set required from a container backend.

    Every method may block and may raise any exception on failure; callers
    translate those into probe errors.
    """

    @abstractmethod
    def list_images(self) -> List[ImageDescriptor]:
        """Return all local images."""

    @abstractmethod
    def create_container(self, image: str, command: List[str], name: str) -> ContainerHandle:
        """Create (but do not start) a container named ``name``."""

    @abstractmethod
    def start_container(self, handle: ContainerHandle) -> None:
        ...

    @abstractmethod
    def wait_container(self, handle: ContainerHandle) -> int:
        """Block until the container exits and return its exit code."""

    @abstractmethod
    def remove_container(self, handle: ContainerHandle) -> None:
        """Remove the container, killing it first if it is still running."""

    @abstractmethod
    def stream_logs(self, handle: ContainerHandle, follow: bool = False) -> Iterator[bytes]:
        """Yield stdout/stderr chunks; with ``follow`` keep going until exit."""


class DockerEngineClient(EngineClient):
    """EngineClient backed by the docker SDK."""

    def __init__(self, client: DockerClient):
        self.client = client

    @classmethod
    def from_env(cls, timeout: Optional[int] = None) -> "DockerEngineClient":
        """Connect using DOCKER_HOST and friends, like ``docker.from_env()``."""
        kwargs = {"timeout": timeout} if timeout else {}
        return cls(docker.from_env(**kwargs))

    def list_images(self) -> List[ImageDescriptor]:
        images = []
        for raw in self.client.api.images():
            tags = [t for t in (raw.get("RepoTags") or []) if t != "<none>:<none>"]
            images.append(
                ImageDescriptor(
                    id=raw["Id"],
                    repo_tags=tags,
                    created=raw.get("Created", 0),
                    size=raw.get("Size", 0),
                )
            )
        return images

    def create_container(self, image: str, command: List[str], name: str) -> ContainerHandle:
        container = self.client.containers.create(image, command=command, name=name)
        return ContainerHandle(id=container.id, name=name)

    def start_container(self, handle: ContainerHandle) -> None:
        self._get(handle).start()

    def wait_container(self, handle: ContainerHandle) -> int:
        result = self._get(handle).wait()
        error = result.get("Error") or {}
        if error.get("Message"):
            raise RuntimeError(error["Message"])
        return int(result.get("StatusCode", -1))

    def remove_container(self, handle: ContainerHandle) -> None:
        self._get(handle).remove(force=True)

    def stream_logs(self, handle: ContainerHandle, follow: bool = False) -> Iterator[bytes]:
        return self._get(handle).logs(stream=True, follow=follow, stdout=True, stderr=True)

    def _get(self, handle: ContainerHandle) -> Container:
        return self.client.containers.get(handle.id)
