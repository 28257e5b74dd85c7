"""Classify every local image, reusing cached results where allowed."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List

from patchprobe.cache import ClassificationCache
from patchprobe.client import EngineClient
from patchprobe.probes.lifecycle import ContainerProbe
from patchprobe.schemas import ImageClassification, ImageDescriptor

logger = logging.getLogger(__name__)


class ImageScanner:
    """Lists images, probes cache misses and records the results.

    Args:
        client: Engine client used to list images
        probe: ContainerProbe used for cache misses
        cache: ClassificationCache updated by the scan
        check_command: Command that exits 0 when the package manager exists
        workers: Number of probes allowed to run at once
    """

    def __init__(
        self,
        client: EngineClient,
        probe: ContainerProbe,
        cache: ClassificationCache,
        check_command: List[str],
        workers: int = 1,
    ):
        self.client = client
        self.probe = probe
        self.cache = cache
        self.check_command = check_command
        self.workers = max(1, workers)

    def scan(self, force_refresh: bool = False) -> List[ImageClassification]:
        """Classify all images and flush the cache once at the end.

        A failing probe classifies its image as unmatched; it never aborts
        the scan. A failing image listing aborts it and returns nothing.
        """
        try:
            images = self.client.list_images()
        except Exception as e:
            logger.error("List Failed: %s", e)
            return []

        if force_refresh:
            self.cache.reset()

        results = {}
        misses = []
        for image in images:
            cached = None if force_refresh else self.cache.lookup(image.id)
            if cached is None:
                misses.append(image)
            else:
                results[image.id] = ImageClassification(image=image, matched=cached, cached=True)

        if self.workers > 1 and len(misses) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                classified = list(pool.map(self._classify, misses))
        else:
            classified = [self._classify(image) for image in misses]
        # Record in listing order so the cache file is stable across runs.
        for item in classified:
            self.cache.record(item.image.id, item.matched)
            results[item.image.id] = item

        self.cache.mark_valid()
        self.cache.flush()

        return [results[image.id] for image in images]

    def _classify(self, image: ImageDescriptor) -> ImageClassification:
        outcome = self.probe.probe(image.reference, self.check_command)
        if not outcome.succeeded:
            logger.debug("%s not matched: %s", image.reference, outcome.message)
        return ImageClassification(image=image, matched=outcome.succeeded)
