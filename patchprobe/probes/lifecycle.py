"""Lifecycle of a disposable probe container.

A probe creates one container, starts it, waits for it to exit with an
upper bound, and removes it. Every stage can fail on its own; whatever
happens after a successful create, the container is removed before the
probe returns.
"""

import logging
import queue
import re
import threading
from typing import List, Optional, Tuple

from patchprobe.client import EngineClient
from patchprobe.config import DEFAULT_PREFIX, DEFAULT_TIMEOUT
from patchprobe.errors import (
    CreateFailure,
    NonZeroExit,
    ProbeError,
    ProbeTimeout,
    StartFailure,
    WaitFailure,
)
from patchprobe.schemas import ContainerHandle, ProbeOutcome

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


class ContainerProbe:
    """Runs one command per disposable container against an EngineClient."""

    def __init__(
        self,
        client: EngineClient,
        timeout: float = DEFAULT_TIMEOUT,
        name_prefix: str = DEFAULT_PREFIX,
    ):
        self.client = client
        self.timeout = timeout
        self.name_prefix = name_prefix

    def container_name(self, image: str) -> str:
        """Deterministic name so leaked containers are easy to spot."""
        return self.name_prefix + _INVALID_NAME_CHARS.sub("_", image)

    def probe(self, image: str, command: List[str], timeout: Optional[float] = None) -> ProbeOutcome:
        """Run ``command`` in a fresh container from ``image`` and classify it.

        Only a zero exit before the deadline counts as success. Errors are
        captured in the returned outcome, never raised.
        """
        try:
            handle = self.create(image, command)
        except ProbeError as e:
            return ProbeOutcome.from_error(e)

        try:
            self.start(handle)
            exit_code = self.wait(handle, self.timeout if timeout is None else timeout)
            if exit_code != 0:
                raise NonZeroExit(exit_code)
            return ProbeOutcome.success()
        except ProbeError as e:
            return ProbeOutcome.from_error(e)
        finally:
            self.remove_container(handle)

    def create(self, image: str, command: List[str]) -> ContainerHandle:
        try:
            return self.client.create_container(image, command, self.container_name(image))
        except Exception as e:
            logger.error("Create failed: %s", e)
            raise CreateFailure(cause=e) from e

    def start(self, handle: ContainerHandle) -> None:
        try:
            self.client.start_container(handle)
        except Exception as e:
            logger.error("Start failed: %s", e)
            raise StartFailure(cause=e) from e

    def wait(self, handle: ContainerHandle, timeout: Optional[float]) -> int:
        """Wait for the container to exit and return its exit code.

        With a timeout, the blocking wait runs in a daemon thread and races
        the deadline. A wait that loses is left running and its result is
        dropped; removing the container makes the backend answer it.
        """
        if timeout is None:
            ok, value = self._wait_once(handle)
        else:
            results: "queue.Queue[Tuple[bool, object]]" = queue.Queue(maxsize=1)
            waiter = threading.Thread(
                target=lambda: results.put(self._wait_once(handle)),
                name=f"wait-{handle.name}",
                daemon=True,
            )
            waiter.start()
            try:
                ok, value = results.get(timeout=max(0.0, timeout))
            except queue.Empty:
                logger.error("Timed out when waiting for a container.")
                raise ProbeTimeout() from None

        if not ok:
            logger.error("Wait failed: %s", value)
            raise WaitFailure(cause=value)
        return value

    def _wait_once(self, handle: ContainerHandle) -> Tuple[bool, object]:
        try:
            return True, self.client.wait_container(handle)
        except Exception as e:
            return False, e

    def remove_container(self, handle: ContainerHandle) -> bool:
        """Remove the container. Failure is logged, never raised."""
        try:
            self.client.remove_container(handle)
        except Exception as e:
            logger.warning("Remove failed: %s", e)
            return False
        logger.info("Removed container %s", handle.name)
        return True
