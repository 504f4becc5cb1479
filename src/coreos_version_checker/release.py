from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any


class ReleaseNotFoundError(LookupError):
    def __init__(self, version: str, channel: str | None = None) -> None:
        self.version = version
        self.channel = channel
        where = f" on the {channel} channel" if channel else ""
        super().__init__(f"release {version!r} not found{where}")

    def __str__(self) -> str:
        # LookupError would otherwise render the message through repr()
        return self.args[0]


@dataclass
class CVEFix:
    id: str
    cvss: float = 0.0
    # why the score could not be resolved, never serialized
    error: Exception | None = field(default=None, compare=False, repr=False)

    @property
    def resolved(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "cvss": self.cvss}


@dataclass
class Release:
    version: str = ""
    release_notes: str = ""
    release_date: datetime.datetime | None = None
    security_fixes: list[CVEFix] = field(default_factory=list)
    max_cvss: float | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.security_fixes:
            d["securityFixes"] = [f.to_dict() for f in self.security_fixes]
        d["version"] = self.version
        d["releaseNotes"] = self.release_notes
        if self.max_cvss is not None:
            d["maxCvss"] = self.max_cvss
        if self.release_date is not None:
            d["releaseDate"] = self.release_date.isoformat()
        return d
