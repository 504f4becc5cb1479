from __future__ import annotations

import logging
from typing import Any


def _add_logging_level(level_name: str, level_num: int, method_name: str | None = None) -> None:
    """
    Registers a new logging level on the `logging` module and on the current logger class.

    Nothing is changed if the level name or the method name is already taken, so calling this
    more than once (e.g. from tests) is harmless.

    Example
    -------
    >>> _add_logging_level("TRACE", logging.DEBUG - 5)
    >>> logging.getLogger(__name__).trace("polling release listing")
    """
    if not method_name:
        method_name = level_name.lower()

    if hasattr(logging, level_name) or hasattr(logging, method_name) or hasattr(logging.getLoggerClass(), method_name):
        return

    def log_for_level(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(level_num):
            self._log(level_num, message, args, **kwargs)

    def log_to_root(message: str, *args: Any, **kwargs: Any) -> None:
        logging.log(level_num, message, *args, **kwargs)

    logging.addLevelName(level_num, level_name)
    setattr(logging, level_name, level_num)
    setattr(logging.getLoggerClass(), method_name, log_for_level)
    setattr(logging, method_name, log_to_root)


# note: the CLI maps -vv to this level, so it must exist before any logging is configured
_add_logging_level("TRACE", logging.DEBUG - 5)
