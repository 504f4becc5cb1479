from __future__ import annotations

from coreos_version_checker import health, repository
from coreos_version_checker.cli import config


def test_missing_config_uses_defaults(tmpdir):
    cfg = config.load(path=str(tmpdir.join("nope.yaml")))
    assert cfg == config.Application()


def test_empty_config_uses_defaults(tmpdir):
    path = tmpdir.join("empty.yaml")
    path.write("")

    assert config.load(path=str(path)) == config.Application()


def test_minimal_config(helpers):
    cfg_path = helpers.local_dir("test-fixtures/minimal.yaml")
    cfg = config.load(path=cfg_path)
    assert cfg == config.Application(log=config.Log(level="TRACE"))


def test_full_config(helpers):
    cfg_path = helpers.local_dir("test-fixtures/full.yaml")
    cfg = config.load(path=cfg_path)

    assert cfg == config.Application(
        host_path="/host",
        host="127.0.0.1",
        port=9090,
        poll_interval=60,
        log=config.Log(
            slim=True,
            level="DEBUG",
            show_timestamp=True,
            show_level=False,
        ),
        http=config.HTTP(
            timeout=3,
            retries=2,
            backoff=0.5,
            max_backoff=4,
            user_agent="checker-test",
        ),
        releases=config.Releases(
            listing_url="https://mirror.example.com/releases-{channel}.json",
            latest_source=repository.LatestSource.POINTER,
            version_url="https://mirror.example.com/{channel}/version.txt",
        ),
        cve=config.CVE(
            url="https://cve.example.com/api/cve/{}",
            score_field="cvss3",
            workers="2x",
        ),
        health=config.Health(system_code="coreos-test"),
    )

    # partially specified sections keep the defaults of their siblings
    assert cfg.health.panic_guide == health.PANIC_GUIDE
    assert cfg.releases.release_conf == "usr/share/coreos/release"


def test_host_file_paths():
    cfg = config.Application(host_path="/host")

    assert cfg.release_conf_path == "/host/usr/share/coreos/release"
    assert cfg.update_conf_path == "/host/etc/coreos/update.conf"


def test_latest_source_coercion():
    assert config.Releases(latest_source="pointer").latest_source == repository.LatestSource.POINTER
