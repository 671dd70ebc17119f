"""Utilities for waiting on and retrying remote calls"""

import logging
import time
from typing import Callable, TypeVar

from .backoff import ExponentialBackoff

LOG = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_backoff(
    function: Callable[[], T],
    backoff: ExponentialBackoff,
    is_retryable: Callable[[Exception], bool] = lambda e: True,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Calls ``function`` until it succeeds. Failures for which ``is_retryable`` returns True are retried after the
    delay computed by ``backoff``, all other failures are raised immediately. Once the backoff is exhausted, the
    last error is raised.

    :param function: the call to perform
    :param backoff: the backoff policy, reset after every call
    :param is_retryable: decides whether a raised exception is transient
    :param sleep: function used to wait between attempts
    :return: the result of the first successful call
    """
    backoff.reset()
    while True:
        try:
            return function()
        except Exception as e:
            if not is_retryable(e):
                raise
            delay = backoff.next_backoff()
            if delay <= 0:
                LOG.debug("Giving up after %s retries: %s", backoff.retries - 1, e)
                raise
            LOG.debug("Retrying in %.2fs after transient error: %s", delay, e)
            sleep(delay)
