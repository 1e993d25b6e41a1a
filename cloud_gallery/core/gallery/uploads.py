"""
Observable, cancellable upload tasks.

An UploadTask wraps one file upload and reports what happens to it as a
sequence of discrete events instead of ad-hoc callbacks:

    STARTED ──► PROGRESS (0..100) ──► SUCCEEDED
                                 └──► FAILED
    (any point before completion) ──► CANCELLED

upload_many runs one task per file with bounded concurrency. Each file
is submitted once and completes independently; there is no ordering
guarantee between files, and one failure does not stop the others.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional
from uuid import uuid4

from .errors import GalleryError
from .models import UploadResult
from .service import GalleryService

logger = logging.getLogger(__name__)


class UploadState(Enum):
    """Lifecycle of a single upload task."""
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class UploadEventType(Enum):
    STARTED = "started"
    PROGRESS = "progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PendingUpload:
    """A file waiting to be uploaded."""
    name: str
    data: bytes
    content_type: str


@dataclass(frozen=True)
class UploadEvent:
    """One observable step of an upload."""
    task_id: str
    name: str
    type: UploadEventType
    percent: int = 0
    result: Optional[UploadResult] = None
    error: Optional[str] = None


UploadListener = Callable[[UploadEvent], None]

TERMINAL_STATES = frozenset({
    UploadState.SUCCEEDED,
    UploadState.FAILED,
    UploadState.CANCELLED,
})


class UploadTask:
    """
    One upload, observable through events and cancellable at any point
    before it finishes.

    Progress reported by the store (possibly from a worker thread) is
    marshalled back onto the event loop, so listeners always run on the
    loop thread and see events in order.
    """

    def __init__(
        self,
        service: GalleryService,
        upload: PendingUpload,
        task_id: Optional[str] = None,
    ) -> None:
        self.id = task_id or uuid4().hex
        self.upload = upload
        self._service = service
        self._state = UploadState.PENDING
        self._listeners: list[UploadListener] = []
        self._percent = 0
        self._cancel_requested = False
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.result: Optional[UploadResult] = None
        self.error: Optional[str] = None

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state in TERMINAL_STATES

    def subscribe(self, listener: UploadListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def cancel(self) -> bool:
        """
        Cancel the upload if it has not finished.

        Returns False when the task is already done.
        """
        if self.done:
            return False

        self._cancel_requested = True

        if self._state is UploadState.PENDING:
            self._finish(UploadState.CANCELLED)
            self._emit(UploadEventType.CANCELLED)
        elif self._task is not None:
            self._task.cancel()

        return True

    async def run(self) -> Optional[UploadResult]:
        """
        Perform the upload.

        Returns the UploadResult on success and None when the task failed
        or was cancelled; the outcome is also recorded on the task.
        """
        if self._state is UploadState.CANCELLED:
            return None
        if self._state is not UploadState.PENDING:
            raise RuntimeError(f"Upload task {self.id} already started")

        self._task = asyncio.current_task()
        self._loop = asyncio.get_running_loop()
        self._state = UploadState.UPLOADING
        self._emit(UploadEventType.STARTED)

        try:
            result = await self._service.upload_image(
                data=self.upload.data,
                original_name=self.upload.name,
                content_type=self.upload.content_type,
                progress=self._on_progress,
            )
        except asyncio.CancelledError:
            self._finish(UploadState.CANCELLED)
            self._emit(UploadEventType.CANCELLED)
            if not self._cancel_requested:
                raise
            # the cancellation was ours; let the surrounding task carry on
            asyncio.current_task().uncancel()
            return None
        except GalleryError as e:
            self._fail(e.message)
            return None
        except Exception as e:
            logger.exception(
                "Unexpected upload failure",
                extra={"task_id": self.id, "original_name": self.upload.name},
            )
            self._fail(str(e))
            return None

        if self._percent < 100:
            self._percent = 100
            self._emit(UploadEventType.PROGRESS, percent=100)

        self.result = result
        self._finish(UploadState.SUCCEEDED)
        self._emit(UploadEventType.SUCCEEDED, percent=100, result=result)
        return result

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _on_progress(self, bytes_sent: int, total_bytes: int) -> None:
        # may be called from a storage worker thread
        if self._loop is None or self._loop.is_closed() or self.done:
            return
        self._loop.call_soon_threadsafe(self._record_progress, bytes_sent, total_bytes)

    def _record_progress(self, bytes_sent: int, total_bytes: int) -> None:
        if self._state is not UploadState.UPLOADING or total_bytes <= 0:
            return

        percent = min(100, round(bytes_sent / total_bytes * 100))
        if percent <= self._percent:
            return

        self._percent = percent
        self._emit(UploadEventType.PROGRESS, percent=percent)

    def _fail(self, message: str) -> None:
        self.error = message
        self._finish(UploadState.FAILED)
        self._emit(UploadEventType.FAILED, percent=self._percent, error=message)

    def _finish(self, state: UploadState) -> None:
        self._state = state
        self._task = None

    def _emit(self, event_type: UploadEventType, **fields) -> None:
        event = UploadEvent(task_id=self.id, name=self.upload.name, type=event_type, **fields)
        for listener in list(self._listeners):
            listener(event)


async def upload_many(
    service: GalleryService,
    uploads: Iterable[PendingUpload],
    concurrency: int = 4,
    listener: Optional[UploadListener] = None,
) -> list[UploadTask]:
    """
    Upload several files concurrently, one task per file.

    Returns the tasks in submission order once all of them have finished;
    inspect each task's state, result and error for the outcome.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be positive")

    tasks = [UploadTask(service, upload) for upload in uploads]
    if listener is not None:
        for task in tasks:
            task.subscribe(listener)

    semaphore = asyncio.Semaphore(concurrency)

    async def run_one(task: UploadTask) -> None:
        async with semaphore:
            await task.run()

    await asyncio.gather(*(run_one(task) for task in tasks))

    logger.info(
        "Batch upload finished",
        extra={
            "total": len(tasks),
            "succeeded": sum(1 for t in tasks if t.state is UploadState.SUCCEEDED),
            "failed": sum(1 for t in tasks if t.state is UploadState.FAILED),
            "cancelled": sum(1 for t in tasks if t.state is UploadState.CANCELLED),
        },
    )

    return tasks
