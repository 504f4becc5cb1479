from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING, Any, Protocol

import orjson
import requests

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_TIMEOUT = 1.5
DEFAULT_RETRIES = 5
DEFAULT_BACKOFF = 0.1
DEFAULT_MAX_INTERVAL = 2.0


class RetriesExhaustedError(Exception):
    """Raised by RetryingTransport once every attempt of a request has failed."""

    def __init__(self, url: str, attempts: int, last_exception: Exception) -> None:
        self.url = url
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(f"giving up after {attempts} attempts: GET {url}: {last_exception}")


class Transport(Protocol):
    def get(self, url: str) -> requests.Response: ...


class RequestsTransport:
    """
    A single GET through a pooled requests.Session. Non-2xx responses raise requests.HTTPError.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str | None = None, session: requests.Session | None = None):
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        if user_agent:
            self.session.headers["User-Agent"] = user_agent

    def get(self, url: str) -> requests.Response:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response


class RetryingTransport:
    """
    Decorates another transport with retries and a capped exponential backoff.

    Args:
        transport: the transport doing the actual request
        retries: how many times a failed call is re-attempted. A maximum of retries+1 calls are made.
        backoff_in_seconds: the base of the exponential backoff between attempts
        max_interval: the upper bound for a single sleep between attempts
        logger: retried failures are logged as warnings, exhaustion as an error
        sleep: replaceable for tests

    Raises:
        RetriesExhaustedError: when every attempt failed. The message starts with "giving up" and the
            last underlying exception is kept as `last_exception` (and chained as the cause).
        requests.HTTPError: as-is and without retrying for client errors other than 429.
    """

    def __init__(  # noqa: PLR0913
        self,
        transport: Transport,
        retries: int = DEFAULT_RETRIES,
        backoff_in_seconds: float = DEFAULT_BACKOFF,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self.transport = transport
        self.retries = retries
        self.backoff_in_seconds = backoff_in_seconds
        self.max_interval = max_interval
        self._sleep = sleep

        if not logger:
            logger = logging.getLogger(self.__class__.__name__)
        self.logger = logger

    def get(self, url: str) -> requests.Response:
        last_exception: Exception | None = None
        attempts = self.retries + 1
        for attempt in range(attempts):
            if last_exception:
                sleep_interval = backoff_sleep_interval(self.backoff_in_seconds, attempt - 1, max_value=self.max_interval)
                self.logger.debug(f"will retry in {sleep_interval:.2f} seconds...")
                self._sleep(sleep_interval)

            try:
                self.logger.trace(f"http GET {url} (attempt {attempt + 1} of {attempts})")  # type: ignore[attr-defined]
                return self.transport.get(url)
            except requests.exceptions.HTTPError as e:
                if is_permanent(e):
                    self.logger.warning(f"not retrying GET {url}: {e}")
                    raise
                last_exception = e
                # HTTPError includes the attempted request, so don't include it redundantly here
                self.logger.warning(f"attempt {attempt + 1} of {attempts} failed: {e}")
            except Exception as e:
                last_exception = e
                self.logger.warning(f"attempt {attempt + 1} of {attempts}: unexpected exception during GET {url}: {e}")

        if last_exception is None:
            raise Exception("unreachable")
        self.logger.error(f"last retry of GET {url} failed with {last_exception}")
        raise RetriesExhaustedError(url, attempts, last_exception) from last_exception


def is_permanent(error: requests.exceptions.HTTPError) -> bool:
    """Client errors won't change on retry, except for rate limiting (429)."""
    response = error.response
    if response is None:
        return False
    return 400 <= response.status_code < 500 and response.status_code != 429  # noqa: PLR2004


def backoff_sleep_interval(interval: float, attempt: int, max_value: float | None = None, jitter: bool = True) -> float:
    # this is an exponential backoff, the jitter is applied before capping so the cap is a hard bound
    val = interval * 2**attempt
    if jitter:
        val += random.uniform(0, interval)  # noqa: S311
        # explanation of S311 disable: rng is not used cryptographically
    if max_value and val > max_value:
        val = max_value
    return val


def get_json(transport: Transport, url: str) -> Any:
    """GET the url and decode the body as JSON."""
    response = transport.get(url)
    return orjson.loads(response.content)


def new_transport(
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    backoff_in_seconds: float = DEFAULT_BACKOFF,
    max_interval: float = DEFAULT_MAX_INTERVAL,
    user_agent: str | None = None,
) -> RetryingTransport:
    return RetryingTransport(
        RequestsTransport(timeout=timeout, user_agent=user_agent),
        retries=retries,
        backoff_in_seconds=backoff_in_seconds,
        max_interval=max_interval,
    )
