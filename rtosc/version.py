"""Library version triples."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Version:
    """A version made of three components, each in 0..255."""

    major: int
    minor: int
    revision: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "revision"):
            component = getattr(self, name)
            if not isinstance(component, int) or not 0 <= component <= 255:
                raise ValueError(f"version {name} {component!r} is not in 0..255")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.revision}"


def version_cmp(v1: Version, v2: Version) -> int:
    """Return a number above, equal to or below 0 as v1 is newer, equal or older."""
    for a, b in zip((v1.major, v1.minor, v1.revision),
                    (v2.major, v2.minor, v2.revision)):
        if a != b:
            return a - b
    return 0