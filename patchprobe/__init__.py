"""patchprobe - find container images that a package manager can patch."""

__version__ = "0.1.0"
