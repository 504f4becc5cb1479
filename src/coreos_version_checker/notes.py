from __future__ import annotations

import re

CVE_PATTERN = re.compile(r"CVE-[0-9]{4}-[0-9]{4,}")


def extract_cve_ids(notes: str | None) -> list[str]:
    """
    Return the distinct CVE ids mentioned in release notes. The order of the result is not
    meaningful.
    """
    if not notes:
        return []
    return list(set(CVE_PATTERN.findall(notes)))
