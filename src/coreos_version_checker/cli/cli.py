from __future__ import annotations

import dataclasses
import enum
import logging
import sys
from typing import Any

import click
import orjson
import yaml

from coreos_version_checker import __name__ as package_name
from coreos_version_checker import cve, health, poller, repository
from coreos_version_checker.cli import config
from coreos_version_checker.utils import concurrency, http


@click.option("--verbose", "-v", default=False, help="show more logs", count=True)
@click.option("--config", "-c", "config_path", default=config.DEFAULT_CONFIG_PATH, help="override config path")
@click.group(help="Reports whether the installed CoreOS version is the latest one, and how severe its pending security fixes are.")
@click.version_option(package_name=package_name.replace("_", "-"), message="%(prog)s %(version)s")
@click.pass_context
def cli(ctx: click.core.Context, verbose: int, config_path: str) -> None:
    import logging.config

    ctx.obj = config.load(path=config_path)

    log_level = ctx.obj.log.level
    if verbose == 1:
        log_level = "DEBUG"
    elif verbose >= 2:
        log_level = "TRACE"

    if ctx.obj.log.slim:
        timestamp_format = ""
        level_format = ""
    else:
        timestamp_format = "%(asctime)s " if ctx.obj.log.show_timestamp else ""
        level_format = "[%(levelname)-5s] " if ctx.obj.log.show_level else ""

    log_format = f"%(log_color)s{timestamp_format}{level_format}%(name)s: %(message)s"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "()": "colorlog.ColoredFormatter",  # colored output
                    "format": log_format,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                    "log_colors": {
                        "TRACE": "purple",
                        "DEBUG": "cyan",
                        "INFO": "reset",
                        "WARNING": "yellow",
                        "ERROR": "red",
                        "CRITICAL": "red,bg_white",
                    },
                },
            },
            "handlers": {
                "default": {
                    "level": log_level,
                    "formatter": "standard",
                    "class": "colorlog.StreamHandler",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "": {  # root logger
                    "handlers": ["default"],
                    "level": log_level,
                },
                # the per-attempt request logs of urllib3 are noise next to our own retry logs
                "urllib3": {
                    "level": "WARNING",
                },
            },
        },
    )


def build(cfg: config.Application) -> tuple[repository.ReleaseRepository, health.HealthService, poller.Poller]:
    """Wire the repository, health service and poller from the application config."""
    transport = http.new_transport(
        timeout=cfg.http.timeout,
        retries=cfg.http.retries,
        backoff_in_seconds=cfg.http.backoff,
        max_interval=cfg.http.max_backoff,
        user_agent=cfg.http.user_agent,
    )
    resolver = cve.CVEResolver(
        transport,
        url_template=cfg.cve.url,
        score_field=cfg.cve.score_field,
        max_workers=concurrency.resolve_workers(cfg.cve.workers),
    )
    repo = repository.ReleaseRepository(
        transport,
        resolver,
        release_conf_path=cfg.release_conf_path,
        update_conf_path=cfg.update_conf_path,
        listing_url_template=cfg.releases.listing_url,
        latest_source=cfg.releases.latest_source,
        version_url_template=cfg.releases.version_url,
    )
    service = health.HealthService(
        repo,
        system_code=cfg.health.system_code,
        name=cfg.health.name,
        description=cfg.health.description,
        panic_guide=cfg.health.panic_guide,
    )
    return repo, service, poller.Poller(repo, interval=cfg.poll_interval)


@cli.command(name="config", help="show the application config")
@click.pass_obj
def show_config(cfg: config.Application) -> None:
    logging.info("showing application config")

    class IndentDumper(yaml.Dumper):
        def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
            return super().increase_indent(flow, False)

    def enum_asdict_factory(data: list[tuple[str, Any]]) -> dict[Any, Any]:
        # show enums by value rather than as !!python/object/apply tags
        return {k: v.value if isinstance(v, enum.Enum) else v for k, v in data}

    cfg_dict = dataclasses.asdict(cfg, dict_factory=enum_asdict_factory)
    print(yaml.dump(cfg_dict, Dumper=IndentDumper, default_flow_style=False))


@cli.command(name="check", help="refresh the release information once and print the health report")
@click.pass_obj
def check(cfg: config.Application) -> None:
    repo, service, _ = build(cfg)
    repo.refresh()

    report = service.health()
    print(orjson.dumps(report, option=orjson.OPT_INDENT_2).decode("utf-8"))
    if not report["ok"]:
        sys.exit(1)


@cli.command(name="serve", help="poll for CoreOS releases and serve the health endpoints")
@click.option("--host", default=None, help="override the listen address")
@click.option("--port", "-p", default=None, type=int, help="override the listen port")
@click.pass_obj
def serve(cfg: config.Application, host: str | None, port: int | None) -> None:
    import uvicorn

    from coreos_version_checker import server

    _, service, release_poller = build(cfg)
    app = server.create_app(service, poller=release_poller)

    host = host or cfg.host
    port = port or cfg.port
    logging.info(f"starting http server on {host}:{port}")
    # uvicorn exits the process when the address cannot be bound
    uvicorn.run(app, host=host, port=port, log_config=None)
