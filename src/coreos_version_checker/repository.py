from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from coreos_version_checker import cve, notes, version
from coreos_version_checker.release import Release, ReleaseNotFoundError
from coreos_version_checker.utils import date, http
from coreos_version_checker.utils.keyvalue import ConfigValueNotFoundError, value_from_file
from coreos_version_checker.utils.rwlock import RWLock

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_LISTING_URL = "https://coreos.com/releases/releases-{channel}.json"
DEFAULT_VERSION_URL = "https://{channel}.release.core-os.net/amd64-usr/current/version.txt"

CHANNEL_KEY = "GROUP="
INSTALLED_VERSION_KEY = "COREOS_RELEASE_VERSION="
VERSION_POINTER_KEY = "COREOS_VERSION="

DEFAULT_CHANNEL = "stable"
KNOWN_CHANNELS = ("stable", "beta", "alpha")


class LatestSource(str, enum.Enum):
    # the greatest version key of the channel listing
    LISTING = "listing"
    # the channel's "current/version.txt" pointer
    POINTER = "pointer"

    def __repr__(self) -> str:
        return self.value


class InvalidListingError(ValueError):
    pass


def resolve_channel(value: str | None) -> str:
    # CoreUpdate hands out non-standard groups (e.g. "coreUpdateChan1"), those track stable
    if value in KNOWN_CHANNELS:
        return value  # type: ignore[return-value]
    return DEFAULT_CHANNEL


def parse_version_pointer(body: str) -> str:
    for line in body.splitlines():
        if line.startswith(VERSION_POINTER_KEY):
            return line[len(VERSION_POINTER_KEY) :].strip()
    raise ConfigValueNotFoundError(VERSION_POINTER_KEY, "the channel version pointer")


@dataclass(frozen=True)
class Snapshot:
    channel: str = DEFAULT_CHANNEL
    installed: Release = field(default_factory=Release)
    latest: Release = field(default_factory=Release)
    error: Exception | None = None
    # false until the first refresh cycle has finished
    refreshed: bool = False


class ReleaseRepository:
    """
    Holds what is currently known about the installed and the latest CoreOS release.

    The state is written only by refresh() (driven by the poller) and read by the health checks.
    Every field is swapped in under the write lock once it has been fully resolved, so a write never
    spans network I/O. A refresh stops at the first failing step and records the error; anything
    stored earlier, in this or a previous cycle, is kept.
    """

    def __init__(  # noqa: PLR0913
        self,
        transport: http.Transport,
        resolver: cve.CVEResolver,
        release_conf_path: str,
        update_conf_path: str,
        listing_url_template: str = DEFAULT_LISTING_URL,
        latest_source: LatestSource = LatestSource.LISTING,
        version_url_template: str = DEFAULT_VERSION_URL,
        logger: logging.Logger | None = None,
    ):
        self.transport = transport
        self.resolver = resolver
        self.release_conf_path = release_conf_path
        self.update_conf_path = update_conf_path
        self.listing_url_template = listing_url_template
        self.latest_source = LatestSource(latest_source)
        self.version_url_template = version_url_template

        if not logger:
            logger = logging.getLogger(self.__class__.__name__)
        self.logger = logger

        self._lock = RWLock()
        self._channel = DEFAULT_CHANNEL
        self._installed = Release()
        self._latest = Release()
        self._error: Exception | None = None
        self._refreshed = False

    # readers

    def snapshot(self) -> Snapshot:
        with self._lock.read():
            return Snapshot(
                channel=self._channel,
                installed=self._installed,
                latest=self._latest,
                error=self._error,
                refreshed=self._refreshed,
            )

    @property
    def channel(self) -> str:
        with self._lock.read():
            return self._channel

    @property
    def installed(self) -> Release:
        with self._lock.read():
            return self._installed

    @property
    def latest(self) -> Release:
        with self._lock.read():
            return self._latest

    @property
    def error(self) -> Exception | None:
        with self._lock.read():
            return self._error

    # writers

    def update_error(self, err: Exception | None) -> None:
        with self._lock.write():
            self._error = err

    def refresh(self) -> Exception | None:
        """
        Run one full refresh cycle. Errors are recorded (and returned), never raised.
        """
        try:
            channel = self.update_channel()
            installed_id = self.installed_version_id()
            self.logger.info(f"installed version is {installed_id} on the {channel} channel")

            listing = self.fetch_listing(channel)
            latest_id = self.latest_version_id(channel, listing)
            self.logger.info(f"latest version on the {channel} channel is {latest_id}")

            installed = self.get(installed_id, listing, channel=channel)
            with self._lock.write():
                self._installed = installed

            latest = self.get(latest_id, listing, channel=channel)
            with self._lock.write():
                self._latest = latest
        except Exception as e:
            self.logger.error(f"failed to refresh release information: {e}")
            self._finish_cycle(e)
            return e

        self._finish_cycle(None)
        return None

    def _finish_cycle(self, err: Exception | None) -> None:
        with self._lock.write():
            self._error = err
            self._refreshed = True

    def update_channel(self) -> str:
        channel = resolve_channel(self._optional_value(CHANNEL_KEY, self.update_conf_path))
        with self._lock.write():
            self._channel = channel
        return channel

    def installed_version_id(self) -> str:
        return value_from_file(INSTALLED_VERSION_KEY, self.release_conf_path)

    def fetch_listing(self, channel: str) -> dict[str, Any]:
        url = self.listing_url_template.format(channel=channel)
        self.logger.debug(f"fetching release listing from {url}")
        listing = http.get_json(self.transport, url)
        if not isinstance(listing, dict):
            raise InvalidListingError(f"expected a JSON object keyed by version from {url}")
        return listing

    def latest_version_id(self, channel: str, listing: Mapping[str, Any]) -> str:
        if self.latest_source == LatestSource.POINTER:
            url = self.version_url_template.format(channel=channel)
            return parse_version_pointer(self.transport.get(url).text)
        return version.latest(listing.keys())

    def get(self, release_version: str, listing: Mapping[str, Any], channel: str | None = None) -> Release:
        """
        Build the fully resolved record for a version from the listing: release notes, date, the CVEs
        mentioned in the notes with their scores, and the highest score.
        """
        entry = listing.get(release_version)
        if not isinstance(entry, dict):
            raise ReleaseNotFoundError(release_version, channel)

        release_notes = entry.get("release_notes") or ""
        if not isinstance(release_notes, str):
            raise InvalidListingError(f"release notes of {release_version!r} are not text")

        release_date = date.parse_release_date(entry.get("release_date") or entry.get("releasedOn"))

        cve_ids = notes.extract_cve_ids(release_notes)
        self.logger.debug(f"release {release_version} mentions {len(cve_ids)} CVEs")
        fixes = self.resolver.resolve_all(cve_ids)

        return Release(
            version=release_version,
            release_notes=release_notes,
            release_date=release_date,
            security_fixes=fixes,
            max_cvss=cve.max_cvss(fixes),
        )

    def _optional_value(self, key: str, path: str) -> str | None:
        try:
            return value_from_file(key, path)
        except ConfigValueNotFoundError:
            self.logger.debug(f"no {key!r} in {path}, using the {DEFAULT_CHANNEL} channel")
            return None
