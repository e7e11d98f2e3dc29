"""
Bundle service for Mr Modpack - Zip assembly and cleanup

This module writes resolved mod files into a single zip per download request,
hands back the public path of that zip, and deletes it again after a fixed
retention window using a background scheduler.
"""

import logging
import os
import threading
import time
import zipfile
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from werkzeug.utils import secure_filename

from ..errors import BundleError, NoFilesError
from ..models import Project, ProjectKey, Release, ResolvedMod
from ..utils.versions import CanonicalVersion
from .catalog_service import CatalogService
from .resolver_service import DependencyResolver, ResolutionState

log = logging.getLogger(__name__)

BundleEntry = Tuple[Project, Release, bytes]

# seconds between cancellation checks while a download is in flight
POLL_INTERVAL = 0.25


@dataclass
class Bundle:
    path: str
    public_path: str
    created_at: datetime
    expires_at: datetime
    entries: int = 0

    def to_dict(self):
        return {
            "path": self.public_path,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "entries": self.entries,
        }


class BundleAssembler:
    def __init__(self, bundle_dir, route="temp-download-all", retention_seconds=120):
        self.bundle_dir = bundle_dir
        self.route = route.strip("/")
        self.retention_seconds = retention_seconds
        self.scheduler = BackgroundScheduler()

    def start_scheduler(self):
        """Start the background scheduler that deletes expired bundles."""
        if self.scheduler.running:
            log.warning("[CLEANUP] Scheduler already running")
            return False
        self.purge_stale()
        self.scheduler.start()
        log.info(f"[CLEANUP] Scheduler started - bundles kept for {self.retention_seconds}s")
        return True

    def stop_scheduler(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            log.info("[CLEANUP] Scheduler stopped")
            return True
        return False

    def purge_stale(self):
        """Delete bundles left behind by a previous run."""
        if not os.path.isdir(self.bundle_dir):
            return 0
        cutoff = time.time() - self.retention_seconds
        removed = 0
        for name in os.listdir(self.bundle_dir):
            path = os.path.join(self.bundle_dir, name)
            if name.endswith(".zip") and os.path.isfile(path) and os.path.getmtime(path) < cutoff:
                self.remove_bundle(path)
                removed += 1
        return removed

    def _create_archive_file(self, collection_name: str):
        safe_name = secure_filename(collection_name) or "collection"
        millis = int(time.time() * 1000)
        while True:
            filename = f"{safe_name}-{millis}.zip"
            path = os.path.join(self.bundle_dir, filename)
            try:
                return filename, path, open(path, "xb")
            except FileExistsError:
                # another request for the same collection in the same millisecond
                millis += 1

    def assemble(self, collection_name: str, entries: Iterable[BundleEntry]) -> Bundle:
        """Write ``entries`` into a new zip and schedule its deletion.

        Each entry is stored under the original filename of the release's
        primary file, in iteration order. A filename already written is not
        written twice. If anything fails the partial zip is removed and the
        error propagates.
        """
        try:
            os.makedirs(self.bundle_dir, exist_ok=True)
            filename, path, fh = self._create_archive_file(collection_name)
        except OSError as e:
            raise BundleError(f"cannot create bundle for {collection_name}: {e}")

        created_at = datetime.now(timezone.utc)
        written = set()
        try:
            with fh, zipfile.ZipFile(fh, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for project, release, data in entries:
                    primary = release.primary_file()
                    if primary is None:
                        raise NoFilesError(project, release)
                    arcname = os.path.basename(primary.filename)
                    if arcname in written:
                        log.warning(f"[BUNDLE] {arcname} from {project.title} already in bundle, skipping")
                        continue
                    zf.writestr(arcname, data)
                    written.add(arcname)
        except BaseException as e:
            self.remove_bundle(path)
            if isinstance(e, OSError):
                raise BundleError(f"cannot write bundle {filename}: {e}") from e
            raise

        bundle = Bundle(
            path=path,
            public_path=f"/{self.route}/{filename}",
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=self.retention_seconds),
            entries=len(written),
        )
        size_mb = os.path.getsize(path) / (1024 * 1024)
        log.info(f"[BUNDLE] Created {filename} ({bundle.entries} mods, {size_mb:.2f} MB)")
        self.schedule_cleanup(bundle)
        return bundle

    def schedule_cleanup(self, bundle: Bundle):
        self.scheduler.add_job(
            self.remove_bundle,
            DateTrigger(run_date=bundle.expires_at),
            args=[bundle.path],
            id=f"cleanup:{bundle.path}",
            name=f"Delete {os.path.basename(bundle.path)}",
            replace_existing=True,
            misfire_grace_time=None,
        )

    def remove_bundle(self, path: str) -> bool:
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            log.error(f"[CLEANUP] Failed to remove {path}: {e}")
            return False
        log.info(f"[CLEANUP] Removed {os.path.basename(path)}")
        return True


def _wait_for_download(resolver: DependencyResolver, mod: ResolvedMod, future: Future) -> bytes:
    """Block until ``future`` finishes, giving up once the request is cancelled."""
    while True:
        resolver.check_cancelled()
        wait = POLL_INTERVAL
        if resolver.deadline is not None:
            wait = max(0.0, min(wait, resolver.deadline - time.monotonic()))
        try:
            data = future.result(timeout=wait)
        except FuturesTimeout:
            continue
        if mod.file.size and len(data) != mod.file.size:
            log.warning(f"[BUNDLE] {mod.file.filename} is {len(data)} bytes, expected {mod.file.size}")
        return data


def _download_entries(catalog: CatalogService, resolver: DependencyResolver, seed: Iterable[ProjectKey],
                      game_version: CanonicalVersion, loaders, pool: ThreadPoolExecutor,
                      labels: Iterable[str] = ()) -> Iterator[BundleEntry]:
    pending = deque()
    for mod in resolver.resolve(seed, game_version, loaders, ResolutionState(), labels=labels):
        pending.append((mod, pool.submit(catalog.client.download_file, mod.file.url)))
        while pending and pending[0][1].done():
            done, future = pending.popleft()
            yield done.project, done.release, _wait_for_download(resolver, done, future)

    while pending:
        done, future = pending.popleft()
        yield done.project, done.release, _wait_for_download(resolver, done, future)

    # last chance to abort before the archive is finalised
    resolver.check_cancelled()


def build_bundle(catalog: CatalogService, assembler: BundleAssembler, collection_name: str,
                 game_version: CanonicalVersion, seed: Iterable[ProjectKey], loaders,
                 download_workers: int = 4, cancel_event: Optional[threading.Event] = None,
                 timeout: Optional[float] = None, labels: Iterable[str] = ()) -> Bundle:
    """Resolve ``seed`` for ``game_version``, download every file and zip it.

    Downloads run on a small thread pool; zip entries still follow the
    resolution order. ``labels`` are the upstream spellings of the game
    version, as collected by the matrix.
    """
    deadline = time.monotonic() + timeout if timeout else None
    resolver = DependencyResolver(catalog, cancel_event=cancel_event, deadline=deadline)
    pool = ThreadPoolExecutor(max_workers=max(1, int(download_workers)))

    log.info(f"[BUNDLE] Building {collection_name} for {game_version}")
    try:
        return assembler.assemble(
            collection_name,
            _download_entries(catalog, resolver, seed, game_version, loaders, pool, labels),
        )
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
