"""Tolerant parsing of upstream game/mod version labels.

Version labels on Modrinth are free text written by many authors, e.g.
``"2.1.0+1.20.1"``, ``"quilt--2.4.21"`` or ``"v8.1.20--Fabric"``. The parser
pulls the first ``major[.minor[.patch]]`` group out of the label and ignores
the rest.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from ..errors import MrModpackError

U32_MAX = 2 ** 32 - 1


class ParseFailure(str, Enum):
    EMPTY = "empty"
    NO_MAJOR = "no_major"
    OVERFLOW = "overflow"


class VersionParseError(MrModpackError, ValueError):
    """Raised when a label holds no usable version number."""

    def __init__(self, raw: str, reason: ParseFailure):
        super().__init__(f"cannot parse version {raw!r}: {reason.value}")
        self.raw = raw
        self.reason = reason


@dataclass(frozen=True, order=True)
class CanonicalVersion:
    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def _read_digits(raw: str, pos: int) -> Tuple[Optional[str], int]:
    end = pos
    while end < len(raw) and raw[end] in "0123456789":
        end += 1
    if end == pos:
        return None, pos
    return raw[pos:end], end


def _to_component(raw: str, digits: str) -> int:
    value = int(digits)
    if value > U32_MAX:
        raise VersionParseError(raw, ParseFailure.OVERFLOW)
    return value


def parse_version(raw: str) -> CanonicalVersion:
    """Extract the canonical ``(major, minor, patch)`` triple from ``raw``.

    Leading non-digits are skipped, missing minor/patch default to 0 and
    anything after the last numeric group is discarded.

    Raises:
        VersionParseError: on empty input, when no digit is found, or when a
            component does not fit in an unsigned 32-bit integer.
    """
    if not raw:
        raise VersionParseError(raw, ParseFailure.EMPTY)

    pos = 0
    while pos < len(raw) and raw[pos] not in "0123456789":
        pos += 1

    major_digits, pos = _read_digits(raw, pos)
    if major_digits is None:
        raise VersionParseError(raw, ParseFailure.NO_MAJOR)
    major = _to_component(raw, major_digits)

    minor = patch = 0
    if pos < len(raw) and raw[pos] == ".":
        minor_digits, after_minor = _read_digits(raw, pos + 1)
        if minor_digits is not None:
            minor = _to_component(raw, minor_digits)
            pos = after_minor
            if pos < len(raw) and raw[pos] == ".":
                patch_digits, _ = _read_digits(raw, pos + 1)
                if patch_digits is not None:
                    patch = _to_component(raw, patch_digits)

    return CanonicalVersion(major, minor, patch)


def try_parse_version(raw: str) -> Optional[CanonicalVersion]:
    """Like :func:`parse_version` but returns None for unusable labels."""
    try:
        return parse_version(raw)
    except VersionParseError:
        return None


def version_labels(version: CanonicalVersion, known: Iterable[str] = ()) -> List[str]:
    """Upstream labels to query for ``version``.

    Modrinth tags game versions with their release name, so ``1.20`` is never
    sent as ``1.20.0``. ``known`` carries labels already seen for the same
    triple; the canonical and short spellings are added after them.
    """
    labels = []
    candidates = list(known) + [str(version)]
    if version.patch == 0:
        candidates.append(f"{version.major}.{version.minor}")
    for label in candidates:
        if label not in labels and try_parse_version(label) == version:
            labels.append(label)
    return labels
