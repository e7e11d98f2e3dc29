"""Glue between the Modrinth client and the shared catalog index."""

import logging
from typing import List, Tuple

from ..models import Collection, Project, ProjectKey
from .catalog_index import CatalogIndex
from .modrinth_service import ModrinthClient

log = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, client: ModrinthClient, index: CatalogIndex):
        self.client = client
        self.index = index

    def project_key(self, project_id: str) -> ProjectKey:
        """Return the index key for ``project_id``, fetching it on first use.

        The index lookup finishes before the network call, so no read lock is
        held when the fetched project gets inserted.
        """
        key = self.index.key_for(project_id)
        if key is not None:
            return key
        project = self.client.get_project(project_id)
        return self.index.insert(project)

    def project(self, key: ProjectKey) -> Project:
        return self.index.get(key)

    def load_collection(self, collection_id: str) -> Tuple[Collection, List[ProjectKey]]:
        """Fetch a collection and make sure all of its projects are indexed.

        Returns the collection and the keys of its projects in collection
        order. Projects Modrinth no longer knows about are dropped.
        """
        collection = self.client.get_collection(collection_id)

        missing = [pid for pid in collection.project_ids if self.index.key_for(pid) is None]
        if missing:
            log.info(f"[CATALOG] Fetching {len(missing)} projects for collection {collection.name}")
            for project in self.client.get_projects(missing):
                self.index.insert(project)
            log.info(f"[CATALOG] Index now holds {len(self.index)} projects")

        keys = []
        for pid in collection.project_ids:
            key = self.index.key_for(pid)
            if key is None:
                log.warning(f"[CATALOG] Project {pid} of collection {collection.name} is gone, skipping")
                continue
            keys.append(key)
        return collection, keys
