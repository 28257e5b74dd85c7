"""Run a command in a disposable container and hand back its output."""

import logging
import sys
from typing import List, Optional, TextIO

from patchprobe.errors import LogReadFailure, NonZeroExit
from patchprobe.probes.lifecycle import ContainerProbe
from patchprobe.schemas import ContainerHandle

logger = logging.getLogger(__name__)


def run_command_in_container(
    probe: ContainerProbe,
    image: str,
    args: List[str],
    stream: bool = False,
    out: Optional[TextIO] = None,
    timeout: Optional[float] = None,
) -> str:
    """Run ``args`` inside a fresh container from ``image``.

    Args:
        probe: ContainerProbe providing the engine client and naming
        image: Image reference to start the container from
        args: Command and arguments
        stream: Follow the logs and write them to ``out`` as they arrive
        out: Destination for streamed output (default: sys.stdout)
        timeout: Upper bound on the wait in seconds; None waits forever

    Returns:
        Everything the command wrote to stdout and stderr.

    Raises:
        ProbeError: CreateFailure, StartFailure, LogReadFailure, WaitFailure,
            ProbeTimeout or NonZeroExit. The container is removed first.
    """
    handle = probe.create(image, args)
    try:
        probe.start(handle)
        output = ""
        if stream:
            output = _read_logs(probe, handle, follow=True, out=out or sys.stdout)
        exit_code = probe.wait(handle, timeout)
        if exit_code != 0:
            raise NonZeroExit(exit_code)
        if not stream:
            output = _read_logs(probe, handle, follow=False)
        return output
    finally:
        probe.remove_container(handle)


def _read_logs(
    probe: ContainerProbe,
    handle: ContainerHandle,
    follow: bool,
    out: Optional[TextIO] = None,
) -> str:
    chunks = []
    try:
        for chunk in probe.client.stream_logs(handle, follow=follow):
            text = chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else str(chunk)
            chunks.append(text)
            if out is not None:
                out.write(text)
                out.flush()
    except Exception as e:
        logger.debug("Log retrieval failed for %s: %s", handle.name, e)
        raise LogReadFailure(e) from e
    return "".join(chunks)
