"""
Result polling state machine.

A poll starts PENDING and ends in exactly one of DELIVERED, FAILED,
TIMED_OUT or CANCELLED. The driver loop is shared; each polling mode
supplies its own transition rules:

- bounded (get_result): a fixed number of attempts. Running out while the
  content is still pending delivers the last result; running out on
  repeated not_found is a timeout.
- deadline (poll_for_results): an elapsed-time budget. Running out is
  always a timeout error, reported through the event registry.

Waits between attempts race an optional asyncio.Event so a caller can stop
a poll without cancelling its task. Task cancellation and caller deadlines
(asyncio.wait_for, asyncio.timeout) propagate untouched.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from pydantic import ValidationError

from realitydefender.errors import ErrorCode, PollCancelledError, SDKError
from realitydefender.logging_config import get_logger
from realitydefender.metrics import record_poll_attempt, record_poll_outcome
from realitydefender.schemas import (
    AllMediaResponse,
    DetectionResult,
    DetectionResultList,
    DetectionStatus,
    MediaResponse,
)
from realitydefender.services.events import EventName, EventRegistry
from realitydefender.services.formatter import format_result, format_results
from realitydefender.services.http_client import HTTPClient
from realitydefender.settings import (
    DEFAULT_MANIPULATED_LABEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_POLLING_INTERVAL_MS,
    DEFAULT_TIMEOUT_MS,
)

logger = get_logger(__name__)

MEDIA_RESULT_ENDPOINT = "/api/media/users"
ALL_MEDIA_RESULTS_ENDPOINT = "/api/v2/media/users/pages"
DEFAULT_PAGE_SIZE = 10

_PENDING_MODEL_STATUSES = {DetectionStatus.ANALYZING.value, DetectionStatus.NOT_APPLICABLE.value}


class PollState(str, Enum):
    """States of a single poll operation."""
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollOutcome:
    """Result of one transition: PENDING, or a terminal state with its payload."""
    state: PollState
    result: DetectionResult | DetectionResultList | None = None
    error: SDKError | None = None

    @classmethod
    def pending(cls) -> "PollOutcome":
        return cls(PollState.PENDING)

    @classmethod
    def delivered(cls, result: DetectionResult | DetectionResultList) -> "PollOutcome":
        return cls(PollState.DELIVERED, result=result)

    @classmethod
    def failed(cls, error: SDKError) -> "PollOutcome":
        return cls(PollState.FAILED, error=error)

    @classmethod
    def timed_out(cls, message: str) -> "PollOutcome":
        return cls(PollState.TIMED_OUT, error=SDKError(message, ErrorCode.TIMEOUT))

    @classmethod
    def cancelled(cls) -> "PollOutcome":
        return cls(PollState.CANCELLED)

    @property
    def is_terminal(self) -> bool:
        return self.state is not PollState.PENDING

    def unwrap(self, request_id: str) -> Any:
        """Return the delivered payload or raise the terminal error."""
        if self.state is PollState.DELIVERED:
            return self.result
        if self.state is PollState.CANCELLED:
            raise PollCancelledError(request_id)
        if self.error is None:
            raise RuntimeError(f"Poll for {request_id} has no terminal outcome")
        raise self.error


def is_still_pending(result: DetectionResult) -> bool:
    """
    Decide whether a formatted result should trigger another attempt.

    Pending when the overall status is ANALYZING, or when every model is
    ANALYZING or NOT_APPLICABLE and at least one of them is ANALYZING.
    """
    if result.status == DetectionStatus.ANALYZING.value:
        return True

    statuses = [model.status for model in result.models]
    return (
        all(status in _PENDING_MODEL_STATUSES for status in statuses)
        and DetectionStatus.ANALYZING.value in statuses
    )


# =============================================================================
# Transition rules
# =============================================================================

class _BoundedPoll:
    """Attempt-counted polling used by get_result."""

    exhausted_message = "exceeded maximum number of polling attempts"

    def __init__(self, max_attempts: int):
        self.max_attempts = max_attempts
        self.attempt = 0
        self.last_result: DetectionResult | None = None

    def expired(self) -> PollOutcome | None:
        return None

    def on_result(self, result: DetectionResult) -> PollOutcome:
        self.last_result = result
        if not is_still_pending(result):
            return PollOutcome.delivered(result)

        self.attempt += 1
        if self.attempt >= self.max_attempts:
            # Best effort: hand back whatever was last observed
            return PollOutcome.delivered(result)
        return PollOutcome.pending()

    def on_error(self, error: SDKError) -> PollOutcome:
        if error.code is not ErrorCode.NOT_FOUND:
            return PollOutcome.failed(error)

        # The job record may not exist yet right after upload
        self.attempt += 1
        if self.attempt >= self.max_attempts:
            if self.last_result is not None:
                return PollOutcome.delivered(self.last_result)
            return PollOutcome.timed_out(self.exhausted_message)
        return PollOutcome.pending()


class _PageFetch(_BoundedPoll):
    """History listing: retried only while the page is not found."""

    def on_result(self, result: DetectionResultList) -> PollOutcome:
        return PollOutcome.delivered(result)


class _DeadlinePoll:
    """Elapsed-time polling used by poll_for_results."""

    def __init__(self, polling_interval_ms: int, timeout_ms: int):
        self.polling_interval_ms = polling_interval_ms
        self.timeout_ms = timeout_ms
        self.elapsed_ms = 0

    def expired(self) -> PollOutcome | None:
        if self.elapsed_ms >= self.timeout_ms:
            return PollOutcome.timed_out("Polling timeout exceeded")
        return None

    def on_result(self, result: DetectionResult) -> PollOutcome:
        if result.status == DetectionStatus.ANALYZING.value:
            self.elapsed_ms += self.polling_interval_ms
            return PollOutcome.pending()
        return PollOutcome.delivered(result)

    def on_error(self, error: SDKError) -> PollOutcome:
        # not_found is fatal here, unlike bounded polling
        return PollOutcome.failed(error)


def _is_cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


async def _wait(interval_ms: int, cancel_event: asyncio.Event | None) -> bool:
    """Sleep for the polling interval. Returns False if cancellation fired first."""
    delay = interval_ms / 1000.0
    if cancel_event is None:
        await asyncio.sleep(delay)
        return True

    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return True
    return False


def _positive_or_default(value: int | None, default: int) -> int:
    if value is None or value <= 0:
        return default
    return value


# =============================================================================
# Engine
# =============================================================================

class PollEngine:
    """
    Drives status fetches for one client.

    The engine keeps no per-poll state between calls; the event registry is
    the only thing shared by concurrent polls.
    """

    def __init__(
        self,
        http: HTTPClient,
        events: EventRegistry,
        manipulated_label: str = DEFAULT_MANIPULATED_LABEL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        metrics_enabled: bool = True,
    ):
        self.http = http
        self.metrics_enabled = metrics_enabled
        self.events = events
        self.manipulated_label = manipulated_label
        self.max_attempts = _positive_or_default(max_attempts, DEFAULT_MAX_ATTEMPTS)
        self.polling_interval_ms = _positive_or_default(
            polling_interval_ms, DEFAULT_POLLING_INTERVAL_MS
        )
        self.timeout_ms = timeout_ms

    async def fetch_result(self, request_id: str) -> DetectionResult:
        """Fetch and format the current status of one request, without retrying."""
        body = await self.http.get(f"{MEDIA_RESULT_ENDPOINT}/{request_id}")
        try:
            media = MediaResponse.model_validate_json(body)
        except ValidationError as e:
            raise SDKError(
                f"failed to parse result response: {e}", ErrorCode.UNKNOWN_ERROR
            ) from e
        return format_result(media, self.manipulated_label)

    async def get_result(
        self,
        request_id: str,
        max_attempts: int | None = None,
        polling_interval_ms: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DetectionResult:
        """
        Poll until the result is final or the attempts run out.

        Args:
            request_id: Request ID returned by an upload
            max_attempts: Attempts before giving up (non-positive uses the default)
            polling_interval_ms: Delay between attempts (non-positive uses the default)
            cancel_event: Optional event that stops polling when set

        Returns:
            The final result, or the last still-analyzing result if attempts ran out

        Raises:
            SDKError: On any fetch error other than not_found, or a timeout
                when the request was never found
            PollCancelledError: If cancel_event was set
        """
        interval_ms = _positive_or_default(polling_interval_ms, self.polling_interval_ms)
        poll = _BoundedPoll(_positive_or_default(max_attempts, self.max_attempts))

        outcome = await self._drive(
            request_id,
            lambda: self.fetch_result(request_id),
            poll,
            interval_ms,
            cancel_event,
            mode="bounded",
        )
        return outcome.unwrap(request_id)

    async def poll_for_results(
        self,
        request_id: str,
        polling_interval_ms: int | None = None,
        timeout_ms: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DetectionResult:
        """
        Poll until a final status and report the outcome through the event registry.

        Exactly one "result" or "error" event is emitted per call, except on
        cancellation, which emits nothing. A timeout_ms of zero or less is
        treated as already expired.

        Raises:
            SDKError: After emitting it as an "error" event
            PollCancelledError: If cancel_event was set
        """
        interval_ms = _positive_or_default(polling_interval_ms, self.polling_interval_ms)
        budget_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        poll = _DeadlinePoll(interval_ms, budget_ms)

        outcome = await self._drive(
            request_id,
            lambda: self.fetch_result(request_id),
            poll,
            interval_ms,
            cancel_event,
            mode="event",
        )

        if outcome.state is PollState.DELIVERED:
            self.events.emit(EventName.RESULT, outcome.result)
        elif outcome.error is not None:
            self.events.emit(EventName.ERROR, outcome.error)
        return outcome.unwrap(request_id)

    async def get_results(
        self,
        page_number: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        max_attempts: int | None = None,
        polling_interval_ms: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DetectionResultList:
        """
        Fetch one page of historical results.

        The page is retried while the API answers not_found, the same way
        get_result waits for a fresh request to appear.
        """
        params = {"size": str(size)}
        if name is not None:
            params["name"] = name
        if start_date is not None:
            params["startDate"] = start_date.strftime("%Y-%m-%d")
        if end_date is not None:
            params["endDate"] = end_date.strftime("%Y-%m-%d")

        async def fetch_page() -> DetectionResultList:
            body = await self.http.get(f"{ALL_MEDIA_RESULTS_ENDPOINT}/{page_number}", params)
            try:
                listing = AllMediaResponse.model_validate_json(body)
            except ValidationError as e:
                raise SDKError(
                    f"failed to parse result response: {e}", ErrorCode.UNKNOWN_ERROR
                ) from e
            return format_results(listing, self.manipulated_label)

        interval_ms = _positive_or_default(polling_interval_ms, self.polling_interval_ms)
        poll = _PageFetch(_positive_or_default(max_attempts, self.max_attempts))
        label = f"page {page_number}"

        outcome = await self._drive(label, fetch_page, poll, interval_ms, cancel_event, mode="page")
        return outcome.unwrap(label)

    async def _drive(
        self,
        request_id: str,
        fetch: Callable[[], Awaitable[Any]],
        poll: _BoundedPoll | _DeadlinePoll,
        interval_ms: int,
        cancel_event: asyncio.Event | None,
        mode: str,
    ) -> PollOutcome:
        """Run the PENDING state until a transition yields a terminal outcome."""
        log_extra = {"request_id": request_id, "mode": mode}
        try:
            outcome = await self._run_pending(fetch, poll, interval_ms, cancel_event, mode)
        except asyncio.CancelledError:
            record_poll_outcome(mode, PollState.CANCELLED.value, enabled=self.metrics_enabled)
            logger.info(f"Polling for {request_id} interrupted", extra=log_extra)
            raise

        record_poll_outcome(mode, outcome.state.value, enabled=self.metrics_enabled)
        if outcome.state is PollState.DELIVERED:
            logger.info(f"Polling for {request_id} finished", extra=log_extra)
        elif outcome.state is PollState.CANCELLED:
            logger.info(f"Polling for {request_id} cancelled", extra=log_extra)
        else:
            logger.warning(
                f"Polling for {request_id} ended with {outcome.state.value}: {outcome.error}",
                extra=log_extra,
            )
        return outcome

    async def _run_pending(
        self,
        fetch: Callable[[], Awaitable[Any]],
        poll: _BoundedPoll | _DeadlinePoll,
        interval_ms: int,
        cancel_event: asyncio.Event | None,
        mode: str,
    ) -> PollOutcome:
        while True:
            expired = poll.expired()
            if expired is not None:
                return expired
            if _is_cancelled(cancel_event):
                return PollOutcome.cancelled()

            record_poll_attempt(mode, enabled=self.metrics_enabled)
            try:
                fetched = await fetch()
            except SDKError as e:
                outcome = poll.on_error(e)
            else:
                outcome = poll.on_result(fetched)

            # A cancellation that lands mid-fetch wins over whatever came back
            if _is_cancelled(cancel_event):
                return PollOutcome.cancelled()
            if outcome.is_terminal:
                return outcome

            logger.debug(f"Result not final yet, retrying in {interval_ms}ms")
            if not await _wait(interval_ms, cancel_event):
                return PollOutcome.cancelled()
