from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Union

import mergedeep
import yaml
from mashumaro.mixins.dict import DataClassDictMixin

from coreos_version_checker import cve, health, poller, repository
from coreos_version_checker.utils import http

DEFAULT_CONFIG_PATH = ".coreos-version-checker.yaml"


@dataclass
class Log:
    slim: bool = os.environ.get("CVC_LOG_SLIM", default="false") == "true"
    level: str = os.environ.get("CVC_LOG_LEVEL", default="INFO")
    show_timestamp: bool = os.environ.get("CVC_LOG_SHOW_TIMESTAMP", default="true") == "true"
    show_level: bool = os.environ.get("CVC_LOG_SHOW_LEVEL", default="true") == "true"

    def __post_init__(self) -> None:
        self.level = self.level.upper()


@dataclass
class HTTP:
    timeout: float = http.DEFAULT_TIMEOUT
    retries: int = http.DEFAULT_RETRIES
    backoff: float = http.DEFAULT_BACKOFF
    max_backoff: float = http.DEFAULT_MAX_INTERVAL
    user_agent: str = "coreos-version-checker"


@dataclass
class Releases:
    listing_url: str = repository.DEFAULT_LISTING_URL
    # "listing" picks the greatest version of the listing, "pointer" reads the channel's version.txt
    latest_source: repository.LatestSource = repository.LatestSource.LISTING
    version_url: str = repository.DEFAULT_VERSION_URL
    release_conf: str = "usr/share/coreos/release"
    update_conf: str = "etc/coreos/update.conf"

    def __post_init__(self) -> None:
        if not isinstance(self.latest_source, repository.LatestSource):
            self.latest_source = repository.LatestSource(self.latest_source)


@dataclass
class CVE:
    url: str = cve.DEFAULT_CVE_URL
    score_field: str = "cvss"
    # an int, a numeric string, "auto" or a multiple of the available cores such as "2x"
    workers: Union[int, str] = 4  # noqa: UP007 - breaks mashumaro


@dataclass
class Health:
    system_code: str = health.SYSTEM_CODE
    name: str = health.NAME
    description: str = health.DESCRIPTION
    panic_guide: str = health.PANIC_GUIDE


@dataclass
class Application(DataClassDictMixin):
    # the dir path of the mounted host fs (in the container)
    host_path: str = os.environ.get("SYS_HC_HOST_PATH", default="/")
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    poll_interval: int = poller.DEFAULT_INTERVAL
    log: Log = field(default_factory=Log)
    http: HTTP = field(default_factory=HTTP)
    releases: Releases = field(default_factory=Releases)
    cve: CVE = field(default_factory=CVE)
    health: Health = field(default_factory=Health)

    @property
    def release_conf_path(self) -> str:
        return os.path.join(self.host_path, self.releases.release_conf)

    @property
    def update_conf_path(self) -> str:
        return os.path.join(self.host_path, self.releases.update_conf)


def load(path: str = DEFAULT_CONFIG_PATH) -> Application:
    try:
        with open(path, encoding="utf-8") as f:
            app_object = yaml.safe_load(f.read()) or {}
            # start from a full default config and merge the loaded values on top, otherwise nested
            # sections that are only partially specified would lose the defaults of their siblings
            instance = Application().to_dict()

            mergedeep.merge(instance, app_object)
            cfg = Application.from_dict(instance)
            if cfg is None:
                raise FileNotFoundError("parsed empty config")
    except FileNotFoundError:
        cfg = Application()

    return cfg
