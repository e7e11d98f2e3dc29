"""
Resolver service for Mr Modpack - Required dependency resolution

Walks the required-dependency graph of a set of projects for one game
version and picks a single release per project. The walk uses an explicit
stack, so deep dependency chains never hit the recursion limit, and a
``downloaded`` set, so cycles and diamonds resolve each project once.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from ..errors import BundleCancelled, NoFilesError, NotFoundError
from ..models import DependencyType, Project, ProjectKey, Release, ResolvedMod
from ..utils.versions import CanonicalVersion, version_labels
from .catalog_service import CatalogService

log = logging.getLogger(__name__)


@dataclass
class ResolutionState:
    """Per-request bookkeeping. Never shared between requests."""

    frontier: List[Tuple[ProjectKey, int]] = field(default_factory=list)
    downloaded: Set[str] = field(default_factory=set)
    # projects that had no compatible release this run; not asked again
    unavailable: Set[str] = field(default_factory=set)


def pick_best_release(releases: Iterable[Release]) -> Release:
    """Latest published release wins."""
    return max(releases, key=lambda r: r.date_published)


class DependencyResolver:
    def __init__(self, catalog: CatalogService, cancel_event: Optional[threading.Event] = None,
                 deadline: Optional[float] = None):
        self.catalog = catalog
        self.cancel_event = cancel_event
        self.deadline = deadline

    def check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise BundleCancelled("bundle request was cancelled")
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise BundleCancelled("bundle request timed out")

    def _project_of_version(self, version_id: str, project: Project, indent: str) -> Optional[str]:
        """Project id behind a dependency that only names a version."""
        try:
            return self.catalog.client.get_version(version_id).project_id
        except NotFoundError:
            log.warning(f"[RESOLVER] {indent}  - dependency version {version_id} of {project.title} does not exist")
            return None

    def resolve(self, seed: Iterable[ProjectKey], game_version: CanonicalVersion,
                loaders: Iterable[str], state: Optional[ResolutionState] = None,
                labels: Iterable[str] = ()) -> Iterator[ResolvedMod]:
        """Yield one :class:`ResolvedMod` per project that has a compatible release.

        Projects without a compatible release are skipped. ``NoFilesError`` is
        raised when the chosen release has nothing to download, and catalog
        errors other than not-found propagate.

        ``labels`` are upstream spellings of ``game_version`` (e.g. ``"1.20"``
        for 1.20.0); releases tagged with any of them match.
        """
        state = state or ResolutionState()
        loaders = list(loaders)
        target = str(game_version)
        game_labels = version_labels(game_version, labels)
        state.frontier.extend((key, 0) for key in seed)

        while state.frontier:
            key, depth = state.frontier.pop()
            project = self.catalog.project(key)
            indent = "  " * depth

            if project.id in state.downloaded or project.id in state.unavailable:
                continue

            self.check_cancelled()
            try:
                releases = self.catalog.client.get_project_versions(project.slug, loaders, game_labels)
            except NotFoundError:
                releases = []

            if not releases:
                log.info(f"[RESOLVER] {indent}nothing found for {project.title} ({target})")
                state.unavailable.add(project.id)
                continue

            release = pick_best_release(releases)
            primary = release.primary_file()
            if primary is None:
                raise NoFilesError(project, release)

            log.info(f"[RESOLVER] {indent}{project.title} ({target}): {release.name} : {primary.filename}")
            state.downloaded.add(project.id)
            yield ResolvedMod(project=project, release=release, file=primary, depth=depth)

            for dep in release.dependencies:
                if dep.dependency_type is not DependencyType.REQUIRED:
                    log.debug(f"[RESOLVER] {indent}  - {dep.project_id} is {dep.dependency_type.value}, not required")
                    continue
                dep_id = dep.project_id
                if not dep_id and dep.version_id:
                    self.check_cancelled()
                    dep_id = self._project_of_version(dep.version_id, project, indent)
                if not dep_id:
                    if not dep.version_id:
                        log.warning(f"[RESOLVER] {indent}  - {project.title} lists a required dependency with no project or version")
                    continue
                if dep_id in state.downloaded:
                    log.debug(f"[RESOLVER] {indent}  - {dep_id} already downloaded")
                    continue

                self.check_cancelled()
                try:
                    dep_key = self.catalog.project_key(dep_id)
                except NotFoundError:
                    log.warning(f"[RESOLVER] {indent}  - dependency {dep_id} of {project.title} does not exist")
                    continue
                state.frontier.append((dep_key, depth + 1))
