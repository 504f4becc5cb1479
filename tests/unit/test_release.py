from __future__ import annotations

import datetime

from coreos_version_checker.release import CVEFix, Release, ReleaseNotFoundError


def test_to_dict():
    release = Release(
        version="1284.2.0",
        release_notes="Fix CVE-2016-9962",
        release_date=datetime.datetime(2017, 1, 11, 1, 55, 33, tzinfo=datetime.UTC),
        security_fixes=[CVEFix("CVE-2016-9962", 4.4)],
        max_cvss=4.4,
    )

    assert release.to_dict() == {
        "securityFixes": [{"id": "CVE-2016-9962", "cvss": 4.4}],
        "version": "1284.2.0",
        "releaseNotes": "Fix CVE-2016-9962",
        "maxCvss": 4.4,
        "releaseDate": "2017-01-11T01:55:33+00:00",
    }


def test_to_dict_omits_empty_values():
    assert Release(version="899.17.0").to_dict() == {"version": "899.17.0", "releaseNotes": ""}


def test_resolution_errors_are_not_serialized():
    fix = CVEFix("CVE-2017-5551", error=ValueError("cannot parse CVSS 'high'"))
    assert fix.to_dict() == {"id": "CVE-2017-5551", "cvss": 0.0}


def test_not_found_message():
    assert str(ReleaseNotFoundError("1.2.3")) == "release '1.2.3' not found"
    assert str(ReleaseNotFoundError("1.2.3", "beta")) == "release '1.2.3' not found on the beta channel"
