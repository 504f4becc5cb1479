from __future__ import annotations

from coreos_version_checker.cli.cli import cli

__all__ = ["cli"]
