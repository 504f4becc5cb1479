from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from coreos_version_checker import health, server
from coreos_version_checker.release import Release
from coreos_version_checker.repository import Snapshot


class FakeRepository:
    def __init__(self, snapshot):
        self._snapshot = snapshot

    def snapshot(self):
        return self._snapshot

    @property
    def error(self):
        return self._snapshot.error


@pytest.fixture()
def client():
    def apply(snapshot, poller=None):
        service = health.HealthService(FakeRepository(snapshot))
        return TestClient(server.create_app(service, poller=poller))

    return apply


def test_health(client):
    snapshot = Snapshot(installed=Release(version="1284.2.0"), latest=Release(version="1298.5.0"))

    response = client(snapshot).get("/__health")

    assert response.status_code == 200
    assert response.headers["cache-control"].startswith("no-cache")
    body = response.json()
    assert body["ok"] is False
    assert body["systemCode"] == "coreos-version-checker"
    assert len(body["checks"]) == 5


def test_gtg_ok(client):
    snapshot = Snapshot(installed=Release(version="1284.2.0"), latest=Release(version="1284.2.0"))

    response = client(snapshot).get("/__gtg")

    assert response.status_code == 200
    assert response.text == "OK"


def test_gtg_failing(client):
    snapshot = Snapshot(error=RuntimeError("release '1.2.3' not found"))

    response = client(snapshot).get("/__gtg")

    assert response.status_code == 503
    assert response.text == "release '1.2.3' not found"


def test_poller_follows_the_app_lifecycle(client):
    poller = MagicMock()

    with client(Snapshot(), poller=poller) as c:
        poller.start.assert_called_once()
        assert c.get("/__gtg").status_code == 200

    poller.stop.assert_called_once()
