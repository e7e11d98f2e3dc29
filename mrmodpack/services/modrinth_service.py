"""
Modrinth service for Mr Modpack - Catalog API client

This module wraps the Modrinth HTTP API: collections (v3), projects and
project versions (v2), and raw file downloads.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from .. import __version__
from ..errors import ApiError, NotFoundError
from ..models import Collection, Project, Release

log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.modrinth.com"


def build_user_agent(name: str, version: Optional[str] = None, contact: Optional[str] = None) -> str:
    """Build a ``name/version (contact)`` user agent as Modrinth asks for."""
    agent = name
    if version:
        agent += f"/{version}"
    if contact:
        agent += f" ({contact})"
    return agent


class ModrinthClient:
    def __init__(self, base_url=DEFAULT_API_URL, user_agent=None, contact=None, timeout=30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent or build_user_agent("mr-modpack", __version__, contact),
        })

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ModrinthClient":
        user_agent = None
        if cfg.get("user_agent"):
            user_agent = build_user_agent(cfg["user_agent"], contact=cfg.get("contact"))
        return cls(
            base_url=cfg.get("modrinth_api_url", DEFAULT_API_URL),
            user_agent=user_agent,
            contact=cfg.get("contact"),
            timeout=cfg.get("request_timeout_seconds", 30),
        )

    def _get(self, url: str, params: Optional[Dict[str, str]] = None, what: str = "resource") -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning(f"[MODRINTH] Request for {what} failed: {e}")
            raise ApiError(f"request for {what} failed: {e}")

        if response.status_code == 404:
            raise NotFoundError(f"{what} not found")
        if not response.ok:
            raise ApiError(f"modrinth returned {response.status_code} for {what}", status=response.status_code)
        return response

    def _get_json(self, url: str, params: Optional[Dict[str, str]] = None, what: str = "resource") -> Any:
        response = self._get(url, params=params, what=what)
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"invalid JSON for {what}: {e}")

    def get_collection(self, collection_id: str) -> Collection:
        """Fetch a collection (v3 API). Raises NotFoundError on 404."""
        data = self._get_json(
            f"{self.base_url}/v3/collection/{collection_id}",
            what=f"collection {collection_id}",
        )
        return Collection.from_api(data)

    def get_project(self, project_id: str) -> Project:
        data = self._get_json(
            f"{self.base_url}/v2/project/{project_id}",
            what=f"project {project_id}",
        )
        return Project.from_api(data)

    def get_projects(self, project_ids: Iterable[str]) -> List[Project]:
        """Fetch many projects in one request. Unknown ids are simply absent."""
        ids = list(project_ids)
        if not ids:
            return []
        data = self._get_json(
            f"{self.base_url}/v2/projects",
            params={"ids": json.dumps(ids)},
            what=f"{len(ids)} projects",
        )
        return [Project.from_api(item) for item in data]

    def get_project_versions(self, slug: str, loaders: Iterable[str], game_versions: Iterable[str]) -> List[Release]:
        """List the versions of ``slug`` matching any loader and game version."""
        params = {}
        loaders = list(loaders)
        game_versions = list(game_versions)
        if loaders:
            params["loaders"] = json.dumps(loaders)
        if game_versions:
            params["game_versions"] = json.dumps(game_versions)

        data = self._get_json(
            f"{self.base_url}/v2/project/{slug}/version",
            params=params,
            what=f"versions of {slug}",
        )
        return [Release.from_api(item) for item in data]

    def get_version(self, version_id: str) -> Release:
        data = self._get_json(
            f"{self.base_url}/v2/version/{version_id}",
            what=f"version {version_id}",
        )
        return Release.from_api(data)

    def download_file(self, url: str) -> bytes:
        return self._get(url, what=url).content

    def close(self):
        self.session.close()
