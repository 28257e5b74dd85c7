"""Disposable-container probes.

``ContainerProbe`` classifies an image by the exit status of one command;
``run_command_in_container`` runs a command for its output.
"""

from .lifecycle import ContainerProbe
from .runner import run_command_in_container

__all__ = [
    "ContainerProbe",
    "run_command_in_container",
]
