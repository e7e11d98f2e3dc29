"""Tests for the Modrinth API client."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from mrmodpack.errors import ApiError, NotFoundError
from mrmodpack.models import DependencyType
from mrmodpack.services.modrinth_service import (ModrinthClient,
                                                 build_user_agent)

VERSION_PAYLOAD = {
    "id": "IZskON6d",
    "project_id": "AANobbMI",
    "name": "Sodium 0.5.3",
    "version_number": "mc1.20.1-0.5.3",
    "date_published": "2023-09-21T21:38:57.443521Z",
    "loaders": ["fabric", "quilt"],
    "game_versions": ["1.20.1"],
    "files": [
        {"filename": "sodium-fabric-mc1.20.1-0.5.3.jar", "url": "https://cdn.modrinth.com/sodium.jar",
         "primary": True, "size": 1048576},
    ],
    "dependencies": [
        {"project_id": "P7dR8mSH", "version_id": None, "dependency_type": "required"},
        {"project_id": None, "version_id": "abc", "dependency_type": "optional"},
    ],
}


def _response(status=200, payload=None, content=b""):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.json.return_value = payload
    response.content = content
    return response


@pytest.fixture
def client():
    return ModrinthClient(base_url="https://api.test", timeout=5)


class TestUserAgent:
    """User agent formatting."""

    def test_full(self):
        assert build_user_agent("mr-modpack", "0.1.0", "me@example.com") == "mr-modpack/0.1.0 (me@example.com)"

    def test_name_only(self):
        assert build_user_agent("mr-modpack") == "mr-modpack"

    def test_from_config(self):
        client = ModrinthClient.from_config({"user_agent": "pack/1.0", "contact": "ops@example.com"})
        assert client.session.headers["User-Agent"] == "pack/1.0 (ops@example.com)"


class TestModrinthClient:
    """HTTP behaviour, with the session mocked out."""

    def test_get_collection(self, client):
        payload = {"id": "abc", "name": "Cozy", "description": "d", "user": "u1", "projects": ["p1", "p2"]}
        with patch.object(client.session, "get", return_value=_response(payload=payload)) as mock_get:
            collection = client.get_collection("abc")

        assert collection.name == "Cozy"
        assert collection.project_ids == ["p1", "p2"]
        assert mock_get.call_args[0][0] == "https://api.test/v3/collection/abc"

    def test_collection_not_found(self, client):
        with patch.object(client.session, "get", return_value=_response(status=404)):
            with pytest.raises(NotFoundError):
                client.get_collection("missing")

    def test_server_error(self, client):
        with patch.object(client.session, "get", return_value=_response(status=500)):
            with pytest.raises(ApiError) as exc:
                client.get_project("p1")
        assert exc.value.status == 500
        assert not isinstance(exc.value, NotFoundError)

    def test_transport_error(self, client):
        with patch.object(client.session, "get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ApiError):
                client.get_project("p1")

    def test_invalid_json(self, client):
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        with patch.object(client.session, "get", return_value=response):
            with pytest.raises(ApiError):
                client.get_project("p1")

    def test_malformed_project(self, client):
        with patch.object(client.session, "get", return_value=_response(payload={"title": "no id"})):
            with pytest.raises(ApiError):
                client.get_project("p1")

    def test_get_project(self, client):
        payload = {"id": "AANobbMI", "slug": "sodium", "title": "Sodium", "game_versions": ["1.20.1", "23w31a"]}
        with patch.object(client.session, "get", return_value=_response(payload=payload)):
            project = client.get_project("sodium")

        assert project.id == "AANobbMI"
        assert project.game_versions == ["1.20.1", "23w31a"]
        assert project.url == "https://modrinth.com/mod/sodium"

    def test_get_projects_bulk(self, client):
        payload = [{"id": "a", "slug": "a", "title": "A"}, {"id": "b", "slug": "b", "title": "B"}]
        with patch.object(client.session, "get", return_value=_response(payload=payload)) as mock_get:
            projects = client.get_projects(["a", "b"])

        assert [p.id for p in projects] == ["a", "b"]
        assert json.loads(mock_get.call_args[1]["params"]["ids"]) == ["a", "b"]

    def test_get_projects_empty_skips_request(self, client):
        with patch.object(client.session, "get") as mock_get:
            assert client.get_projects([]) == []
        mock_get.assert_not_called()

    def test_get_project_versions(self, client):
        with patch.object(client.session, "get", return_value=_response(payload=[VERSION_PAYLOAD])) as mock_get:
            releases = client.get_project_versions("sodium", ["fabric", "quilt"], ["1.20.1"])

        params = mock_get.call_args[1]["params"]
        assert json.loads(params["loaders"]) == ["fabric", "quilt"]
        assert json.loads(params["game_versions"]) == ["1.20.1"]

        release = releases[0]
        assert release.date_published == datetime(2023, 9, 21, 21, 38, 57, 443521, tzinfo=timezone.utc)
        assert release.primary_file().filename == "sodium-fabric-mc1.20.1-0.5.3.jar"
        assert release.dependencies[0].dependency_type is DependencyType.REQUIRED
        assert release.dependencies[1].project_id is None

    def test_unknown_dependency_type_is_rejected(self, client):
        payload = dict(VERSION_PAYLOAD, dependencies=[{"project_id": "x", "dependency_type": "suggested"}])
        with patch.object(client.session, "get", return_value=_response(payload=[payload])):
            with pytest.raises(ApiError):
                client.get_project_versions("sodium", ["fabric"], ["1.20.1"])

    def test_download_file(self, client):
        with patch.object(client.session, "get", return_value=_response(content=b"PK\x03\x04")) as mock_get:
            assert client.download_file("https://cdn.test/a.jar") == b"PK\x03\x04"
        assert mock_get.call_args[1]["timeout"] == 5

    def test_get_version(self, client):
        with patch.object(client.session, "get", return_value=_response(payload=VERSION_PAYLOAD)) as mock_get:
            release = client.get_version("IZskON6d")

        assert release.project_id == "AANobbMI"
        assert release.primary_file().size == 1048576
        assert mock_get.call_args[0][0] == "https://api.test/v2/version/IZskON6d"
