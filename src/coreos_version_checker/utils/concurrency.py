"""Utilities for sizing the CVE lookup thread pool."""

from __future__ import annotations

import os
from math import ceil


def resolve_workers(config_value: int | str) -> int:
    """
    Resolve a worker count from a config value: an int, a numeric string, "auto" (one worker per
    available core) or a core multiplier such as "2x".
    """
    if isinstance(config_value, int):
        workers = config_value
    else:
        config_value = config_value.strip().lower()
        if config_value == "auto" or config_value.endswith("x"):
            available_cores = os.cpu_count() or 4
            if config_value == "auto":
                workers = available_cores
            else:
                workers = ceil(float(config_value.removesuffix("x")) * available_cores)
        else:
            # in case yaml parsing gave us something like "16"
            workers = int(config_value)

    if workers < 1:
        raise ValueError(f"worker count must be positive, got {config_value!r}")
    return workers
