"""
Client-side upload queue: per-file state machine with concurrent submission.
"""
import asyncio
import fnmatch
import logging
import uuid
from collections import OrderedDict
from typing import Callable, Iterable, List, Optional, Set

import httpx

from .config import ClientConfig
from .errors import TaskNotRemovableError
from .models import (
    FilePayload,
    StoredFile,
    TaskStatus,
    UploadResult,
    UploadSummary,
    UploadTask
)
from .tracker import UploadTracker

logger = logging.getLogger(__name__)

INITIAL_PROGRESS = 10
PROGRESS_STEP = 20
PROGRESS_CAP = 90

TaskCallback = Callable[[UploadTask], None]
SummaryCallback = Callable[[UploadSummary], None]


def matches_accepted_type(payload: FilePayload, accepted_types: List[str]) -> bool:
    """Check a file against accepted-type patterns.

    ``*`` accepts everything, ``.ext`` patterns match the file name and
    anything else is matched against the MIME type (``image/*``).
    """
    for pattern in accepted_types:
        if pattern == "*":
            return True
        if pattern.startswith("."):
            if payload.name.lower().endswith(pattern.lower()):
                return True
        elif fnmatch.fnmatch((payload.content_type or "").lower(), pattern.lower()):
            return True
    return False


def _failure_detail(response: httpx.Response) -> str:
    detail = f"Upload failed: {response.reason_phrase or response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return detail
    if isinstance(body, dict) and body.get("error"):
        detail = f"{detail} ({body['error']})"
    return detail


class UploadQueue:
    """Owns upload tasks and submits them to the ingestion endpoint."""

    def __init__(self, config: Optional[ClientConfig] = None,
                 http_client: Optional[httpx.AsyncClient] = None,
                 tracker: Optional[UploadTracker] = None):
        """Initialize the upload queue.

        Args:
            config: Client configuration
            http_client: HTTP client to submit with; one is created if omitted
            tracker: Optional journal that records each batch summary
        """
        self.config = config or ClientConfig()
        self.tracker = tracker
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout
        )
        self._tasks: "OrderedDict[str, UploadTask]" = OrderedDict()
        self._in_flight: Set[str] = set()
        self._callbacks: List[TaskCallback] = []
        self._complete_callbacks: List[SummaryCallback] = []

    async def __aenter__(self) -> "UploadQueue":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP client if this queue created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def tasks(self) -> List[UploadTask]:
        return list(self._tasks.values())

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks.values() if t.status is TaskStatus.PENDING)

    @property
    def is_uploading(self) -> bool:
        return bool(self._in_flight)

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Optional[UploadTask]:
        return self._tasks.get(task_id)

    def register_callback(self, callback: TaskCallback) -> None:
        """Register a callback called with a task after every change to it."""
        self._callbacks.append(callback)

    def on_upload_complete(self, callback: SummaryCallback) -> None:
        """Register a callback called with the summary of each batch."""
        self._complete_callbacks.append(callback)

    def _notify(self, task: UploadTask) -> None:
        for callback in self._callbacks:
            callback(task)

    def add(self, files: Iterable[FilePayload]) -> List[UploadTask]:
        """Queue files as new pending tasks, in submission order.

        Args:
            files: File payloads to queue

        Returns:
            The newly created tasks
        """
        added = []
        for payload in files:
            task = UploadTask(payload=payload)
            self._tasks[task.id] = task
            added.append(task)
            logger.debug(f"Queued {payload.name} ({payload.size} bytes) as {task.id}")
            self._notify(task)
        return added

    def remove(self, task_id: str) -> bool:
        """Remove a pending or failed task.

        Args:
            task_id: Id of the task to remove

        Returns:
            True if a task was removed, False if no such task exists

        Raises:
            TaskNotRemovableError: The task is uploading or already stored
        """
        task = self._tasks.get(task_id)
        if task is None:
            return False
        if not task.removable:
            raise TaskNotRemovableError(
                f"Task {task_id} is {task.status.value} and cannot be removed"
            )
        del self._tasks[task_id]
        return True

    def clear(self) -> None:
        """Drop every task, including in-flight ones.

        Outstanding requests are not cancelled; their responses are ignored.
        """
        self._tasks.clear()

    def validate(self, payload: FilePayload) -> Optional[str]:
        """Return the reason a file fails local validation, or None."""
        if payload.size > self.config.max_file_size:
            return f"File exceeds {self.config.max_file_size_mb:g}MB limit"
        if not matches_accepted_type(payload, self.config.accepted_types):
            return f"File type not accepted: {payload.content_type or 'unknown'}"
        return None

    async def start_upload(self) -> UploadSummary:
        """Submit every pending task and wait until all are terminal.

        Returns:
            UploadSummary with per-file results and success/failure counts
        """
        selected = [
            task for task in self._tasks.values()
            if task.status is TaskStatus.PENDING and task.id not in self._in_flight
        ]
        upload_id = uuid.uuid4().hex

        if not selected:
            logger.warning("No files to upload")
            return UploadSummary(
                upload_id=upload_id,
                total_files=0,
                successful_uploads=0,
                failed_uploads=0,
                results=[]
            )

        self._in_flight.update(task.id for task in selected)
        logger.info(f"Starting upload {upload_id} of {len(selected)} files")

        limit = self.config.max_concurrency
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def run(task: UploadTask) -> Optional[UploadResult]:
            try:
                if semaphore is None:
                    return await self._submit(task)
                async with semaphore:
                    return await self._submit(task)
            finally:
                self._in_flight.discard(task.id)

        outcomes = await asyncio.gather(*(run(task) for task in selected))
        # Tasks removed before dispatch have no outcome.
        results = [r for r in outcomes if r is not None]
        successful = sum(1 for r in results if r.success)

        summary = UploadSummary(
            upload_id=upload_id,
            total_files=len(results),
            successful_uploads=successful,
            failed_uploads=len(results) - successful,
            results=results
        )

        if summary.successful_uploads:
            logger.info(f"{summary.successful_uploads} file(s) uploaded successfully")
        if summary.failed_uploads:
            logger.warning(f"{summary.failed_uploads} file(s) failed to upload")

        if self.tracker:
            self.tracker.log_upload_summary(summary)
        for callback in self._complete_callbacks:
            callback(summary)
        return summary

    def _live(self, task: UploadTask) -> Optional[UploadTask]:
        # Tasks dropped by clear()/remove() while in flight are left alone.
        current = self._tasks.get(task.id)
        return current if current is task else None

    async def _tick_progress(self, task: UploadTask) -> None:
        while True:
            await asyncio.sleep(self.config.progress_interval)
            live = self._live(task)
            if live is None or live.status is not TaskStatus.UPLOADING:
                return
            if live.advance(PROGRESS_STEP, PROGRESS_CAP):
                self._notify(live)

    def _finish(self, task: UploadTask, result: UploadResult) -> UploadResult:
        live = self._live(task)
        if live is None:
            logger.debug(f"Ignoring response for removed task {task.id}")
            return result
        if result.success:
            live.succeed(result.stored)
        else:
            live.fail(result.error)
        self._notify(live)
        return result

    async def _submit(self, task: UploadTask) -> Optional[UploadResult]:
        payload = task.payload
        result = UploadResult(
            task_id=task.id,
            file_name=payload.name,
            success=False,
            size_bytes=payload.size
        )

        live = self._live(task)
        if live is None:
            logger.debug(f"Skipping {payload.name}, removed before upload")
            return None

        validation_error = self.validate(payload)
        if validation_error:
            logger.info(f"Rejected {payload.name} locally: {validation_error}")
            result.error = validation_error
            return self._finish(task, result)

        live.begin(INITIAL_PROGRESS)
        self._notify(live)

        ticker = asyncio.create_task(self._tick_progress(task))
        try:
            response = await self._client.post(
                self.config.endpoint,
                files={'file': (payload.name, payload.content, payload.content_type)}
            )
        except httpx.HTTPError as e:
            logger.error(f"Error uploading {payload.name}: {e}")
            result.error = str(e) or e.__class__.__name__
            return self._finish(task, result)
        except Exception as e:
            logger.error(f"Unexpected error uploading {payload.name}: {e}", exc_info=True)
            result.error = str(e) or e.__class__.__name__
            return self._finish(task, result)
        finally:
            ticker.cancel()

        if not response.is_success:
            result.error = _failure_detail(response)
            logger.error(f"Error uploading {payload.name}: {result.error}")
            return self._finish(task, result)

        result.success = True
        result.stored = self._parse_stored(response)
        logger.info(f"Uploaded {payload.name}")
        return self._finish(task, result)

    @staticmethod
    def _parse_stored(response: httpx.Response) -> Optional[StoredFile]:
        try:
            body = response.json()
        except ValueError:
            return None
        file_data = body.get('file') if isinstance(body, dict) else None
        return StoredFile.from_dict(file_data) if isinstance(file_data, dict) else None
