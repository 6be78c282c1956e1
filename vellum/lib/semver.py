"""Semantic version numbers for project versions.

Version numbers are stored as ``MAJOR.MINOR.PATCH`` strings but compared and
bumped as integer triples, so ``1.10.0`` sorts after ``1.9.0``.
"""

import re
from collections.abc import Iterable
from typing import Literal, NamedTuple, get_args

from vellum.lib.errors import ValidationError

Bump = Literal["major", "minor", "patch"]
BUMPS: tuple[str, ...] = get_args(Bump)

VERSION_PATTERN = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")
INITIAL_VERSION = "1.0.0"


class VersionNumber(NamedTuple):
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> "VersionNumber":
        """Parse a strict ``MAJOR.MINOR.PATCH`` string.

        Raises:
            ValidationError: If the value is not three dot-separated integers
        """
        match = VERSION_PATTERN.fullmatch(value) if isinstance(value, str) else None
        if not match:
            raise ValidationError(
                f"Version number {value!r} must follow the MAJOR.MINOR.PATCH format (e.g. 1.0.0)"
            )
        return cls(*(int(part) for part in match.groups()))

    def bump(self, kind: Bump) -> "VersionNumber":
        if kind == "major":
            return VersionNumber(self.major + 1, 0, 0)
        if kind == "minor":
            return VersionNumber(self.major, self.minor + 1, 0)
        if kind == "patch":
            return VersionNumber(self.major, self.minor, self.patch + 1)
        raise ValidationError(f"Unknown bump type {kind!r}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def is_valid(value: str) -> bool:
    try:
        VersionNumber.parse(value)
    except ValidationError:
        return False
    return True


def latest(values: Iterable[str]) -> VersionNumber | None:
    """Return the highest well-formed version number, ignoring malformed ones."""
    parsed = [VersionNumber.parse(v) for v in values if is_valid(v)]
    return max(parsed) if parsed else None


def suggest_next(existing: Iterable[str], kind: Bump = "minor") -> str:
    """Suggest the version that follows the highest of ``existing``."""
    current = latest(existing)
    if current is None:
        return INITIAL_VERSION
    return str(current.bump(kind))
