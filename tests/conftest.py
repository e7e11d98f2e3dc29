"""Shared fixtures: an in-memory Modrinth catalog and record builders."""

from datetime import datetime, timedelta, timezone

import pytest

from mrmodpack.errors import NotFoundError
from mrmodpack.models import (Collection, Dependency, DependencyType, Project,
                              Release, ReleaseFile)
from mrmodpack.services.catalog_index import CatalogIndex
from mrmodpack.services.catalog_service import CatalogService

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_project(pid, game_versions=("1.20.1",), title=None):
    return Project(id=pid, slug=f"{pid}-slug", title=title or pid.title(), game_versions=list(game_versions))


def make_release(pid, day=1, version="1.0.0", files=None, requires=(), deps=(), game_versions=("1.20.1",)):
    """Build a release of ``pid`` published ``day`` days after BASE_DATE.

    ``requires`` lists project ids added as REQUIRED edges; ``deps`` takes
    ready-made Dependency objects.
    """
    if files is None:
        files = [ReleaseFile(filename=f"{pid}-{version}.jar", url=f"https://cdn.test/{pid}/{version}.jar", primary=True)]
    dependencies = [Dependency(DependencyType.REQUIRED, project_id=r) for r in requires] + list(deps)
    return Release(
        id=f"{pid}-{version}",
        project_id=pid,
        version_number=version,
        name=f"{pid} {version}",
        date_published=BASE_DATE + timedelta(days=day),
        files=files,
        dependencies=dependencies,
        loaders=["fabric"],
        game_versions=list(game_versions),
    )


class FakeModrinthClient:
    """Stands in for ModrinthClient; records every call."""

    def __init__(self):
        self.projects = {}
        self.releases = {}
        self.blobs = {}
        self.collections = {}
        self.version_queries = []
        self.project_fetches = []
        self.downloads = []
        self.version_errors = {}

    def add(self, project, *releases):
        self.projects[project.id] = project
        self.releases.setdefault(project.slug, []).extend(releases)
        for release in releases:
            for f in release.files:
                self.blobs[f.url] = f"content of {f.filename}".encode()
        return project

    def get_collection(self, collection_id):
        if collection_id not in self.collections:
            raise NotFoundError(f"collection {collection_id} not found")
        return self.collections[collection_id]

    def get_project(self, project_id):
        self.project_fetches.append(project_id)
        if project_id not in self.projects:
            raise NotFoundError(f"project {project_id} not found")
        return self.projects[project_id]

    def get_projects(self, project_ids):
        return [self.projects[pid] for pid in project_ids if pid in self.projects]

    def get_project_versions(self, slug, loaders, game_versions):
        self.version_queries.append(slug)
        if slug in self.version_errors:
            raise self.version_errors[slug]
        return [
            r for r in self.releases.get(slug, [])
            if any(v in r.game_versions for v in game_versions)
        ]

    def get_version(self, version_id):
        for releases in self.releases.values():
            for release in releases:
                if release.id == version_id:
                    return release
        raise NotFoundError(f"version {version_id} not found")

    def download_file(self, url):
        self.downloads.append(url)
        if url not in self.blobs:
            raise NotFoundError(url)
        return self.blobs[url]


@pytest.fixture
def fake_client():
    return FakeModrinthClient()


@pytest.fixture
def catalog(fake_client):
    return CatalogService(fake_client, CatalogIndex())


@pytest.fixture
def collection():
    return Collection(id="abc123", name="Cozy Pack", project_ids=[])
