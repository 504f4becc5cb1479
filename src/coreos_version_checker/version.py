"""
Ordering of CoreOS release versions.

Versions are dotted numeric strings ("2079.6.1") which cannot be compared as plain strings
("899.17.0" sorts after "2079.5.1" lexicographically). Each component is left-padded with a
non-digit sentinel to a fixed width, after which lexicographic order over the padded form agrees
with numeric order over the original. The sentinel sorts before every digit, and padding never
adds or removes zeros, so the original text is recovered exactly by stripping it.

The width is a fixed constant rather than computed from the input: components with more than
PAD_WIDTH digits are kept whole but are no longer guaranteed to order correctly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

PAD_CHAR = "*"
PAD_WIDTH = 5


class NoVersionsError(ValueError):
    def __init__(self) -> None:
        super().__init__("no versions to compare")


def pad(version: str) -> str:
    return ".".join(component.rjust(PAD_WIDTH, PAD_CHAR) for component in version.split("."))


def unpad(padded: str) -> str:
    return ".".join(component.lstrip(PAD_CHAR) for component in padded.split("."))


def latest(versions: Iterable[str]) -> str:
    padded = sorted(pad(v) for v in versions)
    if not padded:
        raise NoVersionsError
    return unpad(padded[-1])
