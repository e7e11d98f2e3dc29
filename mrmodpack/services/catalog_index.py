"""
Catalog index for Mr Modpack - Shared project store

Append-only store of fetched Modrinth projects. Each project gets an integer
ProjectKey the first time it is inserted; inserting the same project id again
hands back the existing key. Reads share a lock, appends take it exclusively.

Never call into the Modrinth client while holding a read lock: the client
path may need to insert, and the exclusive acquire would wait forever on the
reader that is the same thread.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import Project, ProjectKey


class ReadWriteLock:
    """Many readers or one writer. Writers are preferred once waiting."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class CatalogIndex:
    def __init__(self):
        self._lock = ReadWriteLock()
        self._projects: List[Project] = []
        self._keys_by_id: Dict[str, ProjectKey] = {}

    def insert(self, project: Project) -> ProjectKey:
        """Store ``project`` and return its key (existing key if already known)."""
        with self._lock.write():
            key = self._keys_by_id.get(project.id)
            if key is not None:
                return key
            self._projects.append(project)
            key = len(self._projects) - 1
            self._keys_by_id[project.id] = key
            return key

    def get(self, key: ProjectKey) -> Project:
        with self._lock.read():
            if key < 0 or key >= len(self._projects):
                raise KeyError(key)
            return self._projects[key]

    def key_for(self, project_id: str) -> Optional[ProjectKey]:
        with self._lock.read():
            return self._keys_by_id.get(project_id)

    def items(self, keys: Iterable[ProjectKey]) -> List[Tuple[ProjectKey, Project]]:
        """Return ``(key, project)`` pairs for ``keys`` in the given order."""
        with self._lock.read():
            pairs = []
            for key in keys:
                if key < 0 or key >= len(self._projects):
                    raise KeyError(key)
                pairs.append((key, self._projects[key]))
            return pairs

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._projects)
