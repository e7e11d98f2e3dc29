"""
Matrix service for Mr Modpack - Game version coverage

Groups the projects of a collection by every canonical game version they
declare support for, so the UI can show which versions cover the most mods.
"""

from typing import Dict, Iterable, List, Set, Tuple

from ..models import Project, ProjectKey
from ..utils.versions import CanonicalVersion, try_parse_version

VersionGroup = Tuple[CanonicalVersion, Set[ProjectKey]]


def build_version_matrix(projects: Iterable[Tuple[ProjectKey, Project]]) -> List[VersionGroup]:
    """Return ``(version, project keys)`` groups, widest coverage first.

    Labels that do not parse are skipped for that group only; the project
    itself still shows up under every label that does parse. Groups of equal
    size keep the order in which their version was first seen.
    """
    groups: Dict[CanonicalVersion, Set[ProjectKey]] = {}

    for key, project in projects:
        for label in project.game_versions:
            version = try_parse_version(label)
            if version is None:
                continue
            groups.setdefault(version, set()).add(key)

    return sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)


def coverage(group: Set[ProjectKey], total: int) -> float:
    """Percentage of ``total`` projects present in ``group``."""
    if total <= 0:
        return 0.0
    return len(group) / total * 100.0


def find_group(matrix: List[VersionGroup], version: CanonicalVersion) -> Set[ProjectKey]:
    for group_version, keys in matrix:
        if group_version == version:
            return set(keys)
    return set()


def collect_labels(projects: Iterable[Tuple[ProjectKey, Project]]) -> Dict[CanonicalVersion, List[str]]:
    """Raw game version labels behind each canonical version, first seen first."""
    labels: Dict[CanonicalVersion, List[str]] = {}
    for _, project in projects:
        for label in project.game_versions:
            version = try_parse_version(label)
            if version is None:
                continue
            seen = labels.setdefault(version, [])
            if label not in seen:
                seen.append(label)
    return labels
