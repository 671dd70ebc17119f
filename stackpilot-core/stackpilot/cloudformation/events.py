"""
Tailing of stack events.

``StackEvents`` polls the event stream of a stack until the stack reaches a terminal status. Every poll
reloads the stack status, fetches all events and yields the ones which have not been reported yet, oldest
first. Between polls it sleeps for the configured polling interval.

    POLLING --(new events)--> REPORTING --(terminal status)--> DONE
       ^                          |
       +-------(sleep)------------+
"""
import enum
import logging
import time
from typing import Callable, Iterator, List, Optional, Protocol, Set

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from stackpilot.cloudformation.stack import Stack, StackEvent
from stackpilot.config import DeployConfig
from stackpilot.constants import STACK_STATUSES_FAILED, STACK_STATUSES_TERMINAL
from stackpilot.utils.backoff import ExponentialBackoff
from stackpilot.utils.sync import retry_with_backoff

LOG = logging.getLogger(__name__)

THROTTLING_ERROR_CODES = ("Throttling", "ThrottlingException", "RequestLimitExceeded")


class CancelSignal(Protocol):
    def is_set(self) -> bool:
        ...


class TailState(enum.Enum):
    POLLING = "POLLING"
    REPORTING = "REPORTING"
    DONE = "DONE"


def is_transient_error(error: Exception) -> bool:
    """Whether a failed call to CloudFormation is worth retrying (throttling, server errors, connection issues)"""
    if isinstance(
        error,
        (EndpointConnectionError, ConnectionClosedError, ConnectTimeoutError, ReadTimeoutError),
    ):
        return True
    if isinstance(error, ClientError):
        if error.response.get("Error", {}).get("Code") in THROTTLING_ERROR_CODES:
            return True
        status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
        return status_code >= 500
    return False


class StackEvents:
    """
    Reports the new events of a stack until it reaches a terminal status.

    Events already present when the tailer is created (the history of the stack at its last ``reload()``) are
    considered as reported. An event is reported at most once, no matter how often CloudFormation returns it.
    """

    stack: Stack
    state: TailState
    seen_event_ids: Set[str]

    def __init__(
        self,
        stack: Stack,
        config: DeployConfig,
        sleep: Callable[[float], None] = time.sleep,
        cancel: Optional[CancelSignal] = None,
        backoff: Optional[ExponentialBackoff] = None,
    ):
        self.stack = stack
        self.interval = config.event_polling
        self.sleep = sleep
        self.cancel = cancel
        self.backoff = backoff or ExponentialBackoff(max_retries=config.event_polling_max_retries)
        self.state = TailState.POLLING
        self.seen_event_ids = {event.event_id for event in stack.events}

    def poll(self) -> List[StackEvent]:
        """Reloads the stack status and returns all of its events, oldest first."""

        def _fetch():
            self.stack.reload()
            return self.stack.fetch_events()

        events = retry_with_backoff(_fetch, self.backoff, is_transient_error, sleep=self.sleep)
        # CloudFormation reports the newest event first
        return list(reversed(events))

    def new_events(self) -> List[StackEvent]:
        """Polls the stack and returns the events which have not been reported before."""
        result = []
        for event in self.poll():
            if event.event_id in self.seen_event_ids:
                continue
            self.seen_event_ids.add(event.event_id)
            result.append(event)
        return result

    def done(self) -> bool:
        # a stack that does not exist (anymore) emits no further events
        return self.stack.status is None or self.stack.status in STACK_STATUSES_TERMINAL

    def failed(self) -> bool:
        return self.stack.status in STACK_STATUSES_FAILED

    def _cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def tail(self) -> Iterator[List[StackEvent]]:
        """
        Yields one batch of new events per poll (polls without new events yield nothing) until the stack reaches
        a terminal status (or does not exist). The cancel signal stops tailing before the next poll.
        """
        while True:
            if self._cancelled():
                LOG.debug("Tailing events of stack %s cancelled", self.stack.name)
                self.state = TailState.DONE
                return

            self.state = TailState.POLLING
            events = self.new_events()
            if events:
                self.state = TailState.REPORTING
                yield events

            if self.stack.status is None:
                LOG.info("Stack %s does not exist", self.stack.name)
                self.state = TailState.DONE
                return

            if self.done():
                LOG.debug("Stack %s reached terminal status %s", self.stack.name, self.stack.status)
                self.state = TailState.DONE
                return

            self.sleep(self.interval)

    def __iter__(self) -> Iterator[List[StackEvent]]:
        return self.tail()
