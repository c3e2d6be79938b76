from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from docchat.client.cache import StatusCache
from docchat.client.estimate import estimate_remaining_ms
from docchat.client.http import ApiError, RetryPolicy, Sleep, request_json
from docchat.config import settings
from docchat.schemas.parsed_content import Failed, Parsed, Unparsed
from docchat.schemas.processing import (
    TERMINAL_STATES,
    ProcessingMetadata,
    ProcessingState,
    StatusResponse,
)

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/v1/process-pdf"
STATUS_PATH = "/api/v1/process-pdf/status"
CANCEL_PATH = "/api/v1/process-pdf/cancel"

_STATES = frozenset({"idle", "processing", "completed", "failed"})

# Callbacks may be plain functions or coroutine functions
SuccessCallback = Callable[[Unparsed | Parsed | Failed], Any]
ErrorCallback = Callable[[Exception], Any]


class ProcessingError(Exception):
    pass


class ProcessingValidationError(ProcessingError, ValueError):
    """The submission is missing its document reference."""


class ProcessingStateError(ProcessingError):
    """The requested transition is not allowed from the current state."""


class ProcessingFailedError(ProcessingError):
    """The server reported the job as failed."""


class ProcessingTracker:
    """Client-side tracker for one chat's PDF processing job.

    State machine::

        idle --start--> processing --poll:completed--> completed
                        processing --poll:failed-----> failed
                        processing --cancel----------> idle
        completed/failed --start (retry)--> processing
        completed/failed --reset (dismiss)--> idle

    Submission and polling run in a single asyncio task: the status is fetched,
    projected, and only then is the next poll scheduled, so requests never
    overlap. Transient failures of a status fetch are retried with backoff;
    anything else ends the job as failed and is passed to on_error.

    Use as an async context manager to resume polling on entry and release the
    task on exit.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        chat_id: str,
        *,
        pdf_storage_url: str | None = None,
        initial_state: ProcessingState = "idle",
        polling_interval: float | None = None,
        retry: RetryPolicy | None = None,
        cache: StatusCache | None = None,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not chat_id:
            raise ValueError("chat_id is required")
        if initial_state not in _STATES:
            raise ValueError(f"Unknown processing state: {initial_state!r}")

        self.chat_id = chat_id
        self.pdf_storage_url = pdf_storage_url
        self.state: ProcessingState = initial_state
        self.polling_interval = (
            settings.client_poll_interval_seconds if polling_interval is None else polling_interval
        )
        self.retry = retry or RetryPolicy()
        self.cache = cache or StatusCache()
        self.on_success = on_success
        self.on_error = on_error
        self.error_message: str | None = None
        self.estimated_remaining_ms: int | None = None
        self.started_at: float | None = None

        self._client = client
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._fetch_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def status(self) -> StatusResponse | None:
        return self.cache.get(self.chat_id)

    @property
    def parsed_content(self) -> Unparsed | Parsed | Failed:
        status = self.status
        return status.parsed_content if status is not None else Unparsed()

    @property
    def metadata(self) -> ProcessingMetadata | None:
        status = self.status
        return status.metadata if status is not None else None

    @property
    def is_pending(self) -> bool:
        return self.state == "processing"

    @property
    def is_complete(self) -> bool:
        return self.state == "completed"

    @property
    def has_error(self) -> bool:
        return self.state == "failed"

    @property
    def is_processing_enabled(self) -> bool:
        return bool(self.pdf_storage_url) and self.state == "idle"

    @property
    def elapsed_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self._clock() - self.started_at) * 1000

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ProcessingTracker:
        await self.resume()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def resume(self) -> None:
        """Pick up a job that was already running, or load a finished one."""
        if self.state == "processing" and self._task is None:
            self.started_at = self._clock()
            self._task = asyncio.create_task(self._run(None), name=f"track:{self.chat_id}")
        elif self.state in TERMINAL_STATES:
            await self.refetch()

    async def close(self) -> None:
        """Release the running task without telling the server to stop."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])

    async def wait(self) -> ProcessingState:
        """Wait for the current job to settle and return the resulting state."""
        task = self._task
        if task is not None:
            await asyncio.wait([task])
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]
        return self.state

    # ------------------------------------------------------------------
    # Job Submitter
    # ------------------------------------------------------------------

    async def start_processing(self, pdf_storage_url: str | None = None) -> None:
        """Submit the document and begin polling. Returns once the job is scheduled."""
        url = pdf_storage_url or self.pdf_storage_url
        if not url:
            logger.error("tracker.missing_document", extra={"chat_id": self.chat_id})
            raise ProcessingValidationError("PDF storage URL is required for processing")
        if self.state == "processing":
            raise ProcessingStateError("Processing is already in progress")

        self.pdf_storage_url = url
        self._set_state("processing")
        self.started_at = self._clock()
        self.error_message = None
        self.estimated_remaining_ms = None
        self.cache.invalidate(self.chat_id)
        self._task = asyncio.create_task(self._run(url), name=f"track:{self.chat_id}")

    async def _submit(self, url: str) -> bool:
        try:
            await request_json(
                self._client,
                "POST",
                SUBMIT_PATH,
                json={"chat_id": self.chat_id, "pdf_storage_url": url},
                error_message="PDF processing failed",
            )
        except ApiError as exc:
            await self._fail(exc)
            return False
        logger.info("tracker.submitted", extra={"chat_id": self.chat_id})
        return True

    # ------------------------------------------------------------------
    # Status Poller + State Projector
    # ------------------------------------------------------------------

    async def _run(self, url: str | None) -> None:
        try:
            if url is not None and not await self._submit(url):
                return
            while self.state == "processing":
                try:
                    await self._fetch()
                except ApiError as exc:
                    await self._fail(exc)
                    return
                if self.state != "processing":
                    break
                await self._sleep(self.polling_interval)
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    async def refetch(self) -> StatusResponse:
        """Fetch and project the status once. Waits for any fetch already in flight."""
        return await self._fetch()

    async def _fetch(self) -> StatusResponse:
        async with self._fetch_lock:
            body = await request_json(
                self._client,
                "GET",
                STATUS_PATH,
                params={"chat_id": self.chat_id},
                retry=self.retry,
                sleep=self._sleep,
                error_message="Failed to fetch PDF processing status",
            )
            try:
                status = StatusResponse.model_validate(body)
            except ValidationError as exc:
                raise ApiError(f"Malformed status response: {exc.error_count()} error(s)") from exc
            self.cache.set(self.chat_id, status)
            await self._project(status)
            return status

    async def _project(self, status: StatusResponse) -> None:
        new_state: ProcessingState = status.processing_state or "idle"

        if new_state == "processing" and status.metadata is not None:
            self.estimated_remaining_ms = estimate_remaining_ms(
                self.elapsed_ms,
                progress=status.metadata.progress,
                page_count=status.metadata.page_count,
            )

        previous = self.state
        if new_state == previous:
            return
        self._set_state(new_state)

        if new_state == "completed":
            self.estimated_remaining_ms = 0
            await self._notify(self.on_success, status.parsed_content)
        elif new_state == "failed":
            self.estimated_remaining_ms = None
            self.error_message = status.error_message or "Unknown error"
            await self._notify(self.on_error, ProcessingFailedError(self.error_message))
        else:
            self.estimated_remaining_ms = None

    async def _fail(self, exc: Exception) -> None:
        self.error_message = str(exc) or "Unknown error"
        self.estimated_remaining_ms = None
        self._set_state("failed")
        await self._notify(self.on_error, exc)

    # ------------------------------------------------------------------
    # Cancellation Controller
    # ------------------------------------------------------------------

    async def cancel(self) -> None:
        """Abort the running job, ask the server to stop, and return to idle.

        Works whether or not this tracker owns a running task, e.g. a job
        restored as "processing" or a tracker that was closed. A no-op outside
        "processing", so repeated calls are harmless.
        """
        if self.state != "processing":
            return
        task, self._task = self._task, None
        self._set_state("idle")
        self.estimated_remaining_ms = None
        self.started_at = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.wait([task])
        self.cache.invalidate(self.chat_id)

        try:
            await request_json(
                self._client,
                "POST",
                CANCEL_PATH,
                json={"chat_id": self.chat_id, "cancel": True},
                error_message="Failed to cancel PDF processing",
            )
        except ApiError as exc:
            logger.warning(
                "tracker.cancel_notify_failed",
                extra={"chat_id": self.chat_id, "error": exc.message},
            )

    async def reset(self) -> None:
        """Dismiss a finished job (completed or failed) back to idle."""
        if self.state not in TERMINAL_STATES:
            return
        self._set_state("idle")
        self.error_message = None
        self.estimated_remaining_ms = None
        self.started_at = None

    # ------------------------------------------------------------------

    def _set_state(self, state: ProcessingState) -> None:
        if state != self.state:
            logger.info(
                "tracker.state",
                extra={"chat_id": self.chat_id, "from": self.state, "to": state},
            )
        self.state = state

    @staticmethod
    async def _notify(callback: Callable[[Any], Any] | None, arg: Any) -> None:
        if callback is None:
            return
        result = callback(arg)
        if inspect.isawaitable(result):
            await result
