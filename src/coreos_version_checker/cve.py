from __future__ import annotations

import concurrent.futures
import logging
import math
from typing import TYPE_CHECKING, Any

from coreos_version_checker.release import CVEFix
from coreos_version_checker.utils import http

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_CVE_URL = "https://cve.circl.lu/api/cve/{}"

MIN_CVSS = 0.0
MAX_CVSS = 10.0

# an unresolved score never wins the max against a real score (which is always >= 0)
UNRESOLVED_CVSS = -1.0


class ScoreNotFoundError(Exception):
    pass


class CVEResolver:
    """
    Looks up the CVSS score of single CVE ids. Every failure is kept on the returned CVEFix
    instead of being raised, so one bad lookup never affects the others.
    """

    def __init__(
        self,
        transport: http.Transport,
        url_template: str = DEFAULT_CVE_URL,
        score_field: str = "cvss",
        max_workers: int = 4,
        logger: logging.Logger | None = None,
    ):
        self.transport = transport
        self.url_template = url_template
        self.score_field = score_field
        self.max_workers = max_workers

        if not logger:
            logger = logging.getLogger(self.__class__.__name__)
        self.logger = logger

    def resolve(self, cve_id: str) -> CVEFix:
        try:
            document = http.get_json(self.transport, self.url_template.format(cve_id))
            score = self._score(document)
        except Exception as e:
            self.logger.warning(f"unable to resolve CVSS score for {cve_id}: {e}")
            return CVEFix(id=cve_id, error=e)

        self.logger.debug(f"{cve_id} has a CVSS score of {score}")
        return CVEFix(id=cve_id, cvss=score)

    def resolve_all(self, cve_ids: Iterable[str]) -> list[CVEFix]:
        cve_ids = list(cve_ids)
        if not cve_ids:
            return []

        workers = max(1, min(self.max_workers, len(cve_ids)))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.resolve, cve_id) for cve_id in cve_ids]
            return [future.result() for future in concurrent.futures.as_completed(futures)]

    def _score(self, document: Any) -> float:
        if not isinstance(document, dict) or document.get(self.score_field) is None:
            raise ScoreNotFoundError(f"no {self.score_field!r} field found")

        value = document[self.score_field]
        # the score is sometimes encoded as a JSON string
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"cannot parse CVSS {value!r}")
        try:
            score = float(value)
        except ValueError as e:
            raise ValueError(f"cannot parse CVSS {value!r} because {e}") from e

        if not math.isfinite(score) or not MIN_CVSS <= score <= MAX_CVSS:
            raise ValueError(f"CVSS {value!r} is outside of {MIN_CVSS}-{MAX_CVSS}")
        return score


def max_cvss(fixes: Iterable[CVEFix]) -> float | None:
    """The highest resolved score, or None if no fix has a resolved score."""
    highest = UNRESOLVED_CVSS
    for fix in fixes:
        highest = max(highest, fix.cvss if fix.resolved else UNRESOLVED_CVSS)

    if highest == UNRESOLVED_CVSS:
        return None
    return highest
