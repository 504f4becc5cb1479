from __future__ import annotations

import os
from typing import Any

import orjson
import pytest
import requests

from coreos_version_checker import cve, repository


class StubTransport:
    """
    Deterministic stand-in for the HTTP transport. Routes map a url to a JSON-able payload, a str/bytes
    body, or an exception instance to raise. Unknown urls get a 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[str] = []

    def get(self, url: str) -> requests.Response:
        self.calls.append(url)
        if url not in self.routes:
            return self._raise_for(url, 404)

        route = self.routes[url]
        if isinstance(route, Exception):
            raise route

        if isinstance(route, bytes):
            body = route
        elif isinstance(route, str):
            body = route.encode("utf-8")
        else:
            body = orjson.dumps(route)
        return _response(url, 200, body)

    @staticmethod
    def _raise_for(url: str, status: int) -> requests.Response:
        response = _response(url, status, b"")
        response.raise_for_status()
        return response


def _response(url: str, status: int, body: bytes) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = url
    response._content = body
    response.encoding = "utf-8"
    return response


class Helpers:
    def __init__(self, request, tmpdir):
        # current information about the running test
        # docs: https://docs.pytest.org/en/6.2.x/reference.html#std-fixture-request
        self.request = request
        self.tmpdir = tmpdir

    def local_dir(self, path: str) -> str:
        """
        Returns the path of a file relative to the current test file.

        Given the following setup:

            tests/unit/cli/
            ├── test-fixtures
            │   └── minimal.yaml
            └── test_config.py

        The call `local_dir("test-fixtures/minimal.yaml")` will return the absolute path to the file
        relative to test_config.py
        """
        current_test_filepath = os.path.realpath(self.request.module.__file__)
        parent = os.path.realpath(os.path.dirname(current_test_filepath))
        return os.path.join(parent, path)

    def write_host_files(self, release_version: str | None = "1284.2.0", group: str | None = "stable") -> tuple[str, str]:
        """
        Writes a release and an update config the way CoreOS lays them out. Returns (release path, update path).
        """
        release_conf = self.tmpdir.join("release")
        lines = ["COREOS_RELEASE_BOARD=amd64-usr"]
        if release_version is not None:
            lines.insert(0, f"COREOS_RELEASE_VERSION={release_version}")
        lines.append("COREOS_RELEASE_APPID={e96281a6-d1af-4bde-9a0a-97b76e56dc57}")
        release_conf.write("\n".join(lines) + "\n")

        update_conf = self.tmpdir.join("update.conf")
        lines = ["REBOOT_STRATEGY=off"]
        if group is not None:
            lines.insert(0, f"GROUP={group}")
        update_conf.write("\n".join(lines) + "\n")

        return str(release_conf), str(update_conf)


@pytest.fixture
def helpers(request, tmpdir):
    """
    Returns a common set of helper functions for tests.
    """
    return Helpers(request, tmpdir)


@pytest.fixture
def stub_transport():
    def apply(routes: dict[str, Any] | None = None) -> StubTransport:
        return StubTransport(routes)

    return apply


@pytest.fixture
def disable_get_requests(monkeypatch):
    def disabled(*args, **kwargs):
        raise RuntimeError("requests disabled but HTTP GET attempted")

    monkeypatch.setattr(requests.Session, "get", disabled)


LISTING_URL = "http://releases.test/releases-{channel}.json"
CVE_URL = "http://cve.test/api/cve/{}"


@pytest.fixture
def release_listing():
    return {
        "1284.2.0": {
            "release_notes": (
                "Security Fixes:\n\n  - Fix RunC privilege escalation "
                "([CVE-2016-9962](http://cve.mitre.org/cgi-bin/cvename.cgi?name=CVE-2016-9962))\n"
            ),
            "release_date": "2017-01-11 01:55:33 +0000",
            "version": "1284.2.0",
        },
        "899.17.0": {
            "release_notes": "Bug fixes only.",
            "release_date": "2016-04-05 17:01:12 +0000",
        },
        "1298.5.0": {
            "release_notes": "- Fix CVE-2017-5551 and CVE-2017-2584, see CVE-2017-5551 for details",
            "release_date": "2017-02-28 21:45:00 +0000",
        },
    }


@pytest.fixture
def repository_factory(helpers, stub_transport, release_listing):
    """
    Builds a repository backed by stubbed host files and a stub transport. Keyword arguments override
    the host file contents, the listing, the CVE scores and any repository constructor argument.
    """

    def apply(
        release_version: str | None = "1284.2.0",
        group: str | None = "stable",
        listing: dict[str, Any] | None = None,
        scores: dict[str, Any] | None = None,
        extra_routes: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> tuple[repository.ReleaseRepository, StubTransport]:
        release_conf, update_conf = helpers.write_host_files(release_version=release_version, group=group)

        if listing is None:
            listing = release_listing
        if scores is None:
            scores = {"CVE-2016-9962": "4.4", "CVE-2017-5551": "7.2", "CVE-2017-2584": "4.6"}

        routes: dict[str, Any] = {}
        channel = repository.resolve_channel(group)
        routes[LISTING_URL.format(channel=channel)] = listing
        for cve_id, score in scores.items():
            routes[CVE_URL.format(cve_id)] = score if isinstance(score, Exception) else {"id": cve_id, "cvss": score}
        routes.update(extra_routes or {})

        transport = StubTransport(routes)
        resolver = cve.CVEResolver(transport, url_template=CVE_URL, max_workers=2)
        kwargs.setdefault("listing_url_template", LISTING_URL)
        repo = repository.ReleaseRepository(
            transport,
            resolver,
            release_conf_path=release_conf,
            update_conf_path=update_conf,
            **kwargs,
        )
        return repo, transport

    return apply
