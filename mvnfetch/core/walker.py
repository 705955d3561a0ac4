"""
The dependency graph walker: fetches every coordinate's artifact and descriptor,
reads the descriptor's own dependencies and keeps going until the graph is
exhausted.
"""

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Iterable, List, Tuple

import aiofiles
from rich.markup import escape

from mvnfetch.exceptions import EmptyDescriptorError, FetchError, ManifestParseError
from mvnfetch.models.config import FetchConfig
from mvnfetch.models.coordinate import (
    ARTIFACT_EXTENSION,
    DESCRIPTOR_EXTENSION,
    Coordinate,
    local_path,
    remote_url,
)
from mvnfetch.models.stats import WalkStats
from mvnfetch.net.fetcher import ArtifactFetcher, discard_file
from mvnfetch.utils.path import create_dir, is_non_empty_file
from mvnfetch.utils.structured_logger import WalkEventLogger

from .manifest import parse_manifest
from .visit_tracker import VisitTracker

log = logging.getLogger(__name__)


class DependencyGraphWalker:
    """
    Walks a dependency graph breadth-first with an explicit work queue.

    Pending coordinates are taken in batches of ``max_workers``; a batch runs
    concurrently and must finish completely before the next one starts. A
    semaphore of the same size bounds the fetches in flight. Failures stay local
    to the coordinate they happened at.
    """

    def __init__(
        self,
        config: FetchConfig,
        fetcher: ArtifactFetcher,
        events: WalkEventLogger | None = None,
        tracker: VisitTracker | None = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.events = events or WalkEventLogger()
        self.tracker = tracker or VisitTracker()
        self.stats = WalkStats()
        self.events.add_listener(self.stats.handle_event)
        self._fetch_semaphore = asyncio.Semaphore(config.max_workers)
        self._in_flight = 0

    async def walk_all(
        self, roots: Iterable[Coordinate], repository_root: Path
    ) -> WalkStats:
        """
        Materializes the transitive closure of ``roots`` under ``repository_root``.
        """
        repository_root = Path(repository_root)
        await asyncio.to_thread(create_dir, repository_root)

        pending: deque[Tuple[Coordinate, int]] = deque((c, 0) for c in roots)
        self.events.walk_started(
            len(pending), str(repository_root), self.config.max_workers
        )

        batch_size = self.config.max_workers
        while pending:
            batch = [pending.popleft() for _ in range(min(batch_size, len(pending)))]
            results = await asyncio.gather(
                *(self.walk_one(c, repository_root, depth) for c, depth in batch),
                return_exceptions=True,
            )
            for (coordinate, depth), result in zip(batch, results):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    log.error(
                        f"[red]Unexpected error while walking "
                        f"{escape(str(coordinate))}: {escape(str(result))}[/red]",
                        exc_info=result,
                    )
                    self.events.branch_aborted(
                        coordinate.key, f"unexpected error: {result}"
                    )
                    continue
                self._enqueue_children(pending, result, depth + 1)

        self.events.walk_completed(len(self.tracker), self.stats.elapsed_seconds)
        return self.stats

    def _enqueue_children(
        self,
        pending: deque[Tuple[Coordinate, int]],
        children: List[Coordinate],
        depth: int,
    ) -> None:
        for child in children:
            if depth > self.config.max_depth:
                if child.key not in self.tracker:
                    self.events.branch_aborted(
                        child.key, f"maximum depth {self.config.max_depth} reached"
                    )
                continue
            pending.append((child, depth))

    async def walk_one(
        self, coordinate: Coordinate, repository_root: Path, depth: int = 0
    ) -> List[Coordinate]:
        """
        Settles one coordinate and returns the dependencies its descriptor declares.
        Returns an empty list when the coordinate was already visited or its
        branch had to be abandoned.
        """
        if not coordinate.is_complete():
            self.events.branch_aborted(str(coordinate), "incomplete coordinate")
            return []
        if not coordinate.is_safe_path():
            self.events.branch_aborted(
                str(coordinate), "coordinate does not map inside the repository"
            )
            return []

        key = coordinate.key
        if not await self.tracker.mark(key):
            self.events.duplicate_skipped(key)
            return []
        self.events.coordinate_started(key, depth)

        jar_path = local_path(repository_root, coordinate, ARTIFACT_EXTENSION)
        pom_path = local_path(repository_root, coordinate, DESCRIPTOR_EXTENSION)
        try:
            await asyncio.to_thread(create_dir, pom_path.parent)
        except OSError as e:
            self.events.branch_aborted(key, f"cannot create directory: {e}")
            return []

        await asyncio.gather(
            self._settle_file(coordinate, ARTIFACT_EXTENSION, jar_path),
            self._settle_file(coordinate, DESCRIPTOR_EXTENSION, pom_path),
        )

        try:
            document = await self._read_descriptor(pom_path)
            manifest = parse_manifest(document)
        except EmptyDescriptorError as e:
            self.events.branch_aborted(key, str(e))
            return []
        except ManifestParseError as e:
            self.events.branch_aborted(key, f"unparsable descriptor: {e}")
            return []

        children = manifest.coordinates()
        for child in children:
            self.events.dependency_discovered(key, child.key)
        return children

    async def _settle_file(
        self, coordinate: Coordinate, extension: str, path: Path
    ) -> bool:
        """Ensures one file of a coordinate is on disk. Returns False if it is not."""
        key = coordinate.key
        if await asyncio.to_thread(is_non_empty_file, path):
            self.events.fetch_skipped(key, str(path), extension)
            return True

        url = remote_url(self.config.repository_url, coordinate, extension)
        async with self._fetch_semaphore:
            self._in_flight += 1
            self.stats.peak_in_flight = max(self.stats.peak_in_flight, self._in_flight)
            self.events.fetch_started(key, url, extension)
            try:
                size = await self.fetcher.fetch(url, path)
            except FetchError as e:
                self.events.fetch_failed(key, url, extension, str(e), e.status)
                return False
            finally:
                self._in_flight -= 1

        self.events.fetch_completed(key, url, extension, size)
        return True

    async def _read_descriptor(self, path: Path) -> bytes:
        try:
            async with aiofiles.open(path, "rb") as f:
                document = await f.read()
        except OSError as e:
            raise EmptyDescriptorError(f"descriptor missing: {path.name}") from e

        if not document:
            discard_file(path)
            raise EmptyDescriptorError(f"descriptor is empty: {path.name}")
        return document
