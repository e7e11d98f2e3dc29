"""Catalog records used by the bundling engine.

Thin dataclasses over the Modrinth JSON payloads. ``from_api`` constructors
only pick the fields the engine needs.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ApiError

ProjectKey = int


class DependencyType(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    INCOMPATIBLE = "incompatible"
    EMBEDDED = "embedded"

    @classmethod
    def from_api(cls, value: str) -> "DependencyType":
        try:
            return cls(value)
        except ValueError:
            raise ApiError(f"unknown dependency type: {value!r}")


_TIMESTAMP_RE = re.compile(r"^(?P<base>[^.]+?)(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:?\d{2})?$")


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    # Modrinth does not pad the fractional seconds to six digits
    match = _TIMESTAMP_RE.match(value)
    if match is None:
        raise ApiError(f"bad timestamp: {value!r}")
    normalized = match.group("base")
    if match.group("frac"):
        normalized += "." + match.group("frac")[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz and tz != "Z":
        normalized += tz
    try:
        stamp = datetime.fromisoformat(normalized)
    except ValueError:
        raise ApiError(f"bad timestamp: {value!r}")
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


@dataclass
class Project:
    id: str
    slug: str
    title: str
    game_versions: List[str] = field(default_factory=list)
    loaders: List[str] = field(default_factory=list)
    project_type: str = "mod"

    @property
    def url(self) -> str:
        return f"https://modrinth.com/{self.project_type}/{self.slug}"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Project":
        try:
            return cls(
                id=data["id"],
                slug=data["slug"],
                title=data.get("title") or data["slug"],
                game_versions=list(data.get("game_versions") or []),
                loaders=list(data.get("loaders") or []),
                project_type=data.get("project_type") or "mod",
            )
        except (KeyError, TypeError) as e:
            raise ApiError(f"malformed project payload: {e}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "url": self.url,
            "game_versions": self.game_versions,
        }


@dataclass
class ReleaseFile:
    filename: str
    url: str
    primary: bool = False
    size: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ReleaseFile":
        return cls(
            filename=data["filename"],
            url=data["url"],
            primary=bool(data.get("primary", False)),
            size=int(data.get("size") or 0),
        )


@dataclass
class Dependency:
    dependency_type: DependencyType
    project_id: Optional[str] = None
    version_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Dependency":
        return cls(
            dependency_type=DependencyType.from_api(data.get("dependency_type", "")),
            project_id=data.get("project_id"),
            version_id=data.get("version_id"),
        )


@dataclass
class Release:
    id: str
    project_id: str
    version_number: str
    date_published: datetime
    name: str = ""
    files: List[ReleaseFile] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    loaders: List[str] = field(default_factory=list)
    game_versions: List[str] = field(default_factory=list)

    def primary_file(self) -> Optional[ReleaseFile]:
        """Return the file flagged primary, else the first file, else None."""
        for f in self.files:
            if f.primary:
                return f
        return self.files[0] if self.files else None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Release":
        try:
            return cls(
                id=data["id"],
                project_id=data["project_id"],
                version_number=data.get("version_number", ""),
                name=data.get("name") or data.get("version_number", ""),
                date_published=_parse_timestamp(data.get("date_published")),
                files=[ReleaseFile.from_api(f) for f in data.get("files") or []],
                dependencies=[Dependency.from_api(d) for d in data.get("dependencies") or []],
                loaders=list(data.get("loaders") or []),
                game_versions=list(data.get("game_versions") or []),
            )
        except (KeyError, TypeError) as e:
            raise ApiError(f"malformed version payload: {e}")


@dataclass
class Collection:
    id: str
    name: str
    description: str = ""
    user: str = ""
    project_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Collection":
        try:
            return cls(
                id=data["id"],
                name=data["name"],
                description=data.get("description") or "",
                user=data.get("user") or "",
                project_ids=list(data.get("projects") or []),
            )
        except (KeyError, TypeError) as e:
            raise ApiError(f"malformed collection payload: {e}")


@dataclass
class ResolvedMod:
    project: Project
    release: Release
    file: ReleaseFile
    depth: int = 0
