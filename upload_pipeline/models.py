"""
Module containing data models for the upload pipeline.
"""
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import InvalidTransitionError
from .naming import new_task_id


class TaskStatus(str, Enum):
    """Lifecycle states of an upload task."""
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


_ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.UPLOADING, TaskStatus.ERROR},
    TaskStatus.UPLOADING: {TaskStatus.SUCCESS, TaskStatus.ERROR},
    TaskStatus.SUCCESS: set(),
    TaskStatus.ERROR: set(),
}

REMOVABLE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.ERROR})


@dataclass(frozen=True)
class FilePayload:
    """A file captured for upload: raw content plus declared metadata."""
    name: str
    size: int
    content_type: str
    content: bytes = field(repr=False)

    @classmethod
    def from_bytes(cls, name: str, content: bytes,
                   content_type: Optional[str] = None) -> "FilePayload":
        if content_type is None:
            content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return cls(name=name, size=len(content), content_type=content_type, content=content)

    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> "FilePayload":
        """Read a local file into a payload.

        Args:
            path: Path to the file
            content_type: Explicit MIME type, guessed from the name if omitted

        Returns:
            FilePayload holding the file's bytes
        """
        path = Path(path)
        return cls.from_bytes(path.name, path.read_bytes(), content_type)


@dataclass
class StoredFile:
    """Client-side view of a committed object, as returned by the endpoint."""
    name: str
    size: int
    type: str
    path: str
    url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredFile":
        return cls(
            name=data.get("name", ""),
            size=data.get("size", 0),
            type=data.get("type", ""),
            path=data.get("path", ""),
            url=data.get("url", ""),
        )


@dataclass
class UploadTask:
    """One file moving through the upload lifecycle.

    State changes go through the transition methods below; assigning
    ``status`` directly bypasses the checks and should not be done.
    """
    payload: FilePayload
    id: str = ""
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    error: Optional[str] = None
    result: Optional[StoredFile] = None

    def __post_init__(self):
        if not self.id:
            self.id = new_task_id(self.payload.name)

    @property
    def removable(self) -> bool:
        return self.status in REMOVABLE_STATUSES

    @property
    def terminal(self) -> bool:
        return self.status in (TaskStatus.SUCCESS, TaskStatus.ERROR)

    def _transition(self, target: TaskStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Task {self.id} cannot move from {self.status.value} to {target.value}"
            )
        self.status = target

    def begin(self, initial_progress: int = 10) -> None:
        """Mark the request as dispatched."""
        self._transition(TaskStatus.UPLOADING)
        self.progress = initial_progress

    def advance(self, step: int = 20, cap: int = 90) -> bool:
        """Bump simulated progress while uploading.

        Returns:
            True if progress changed
        """
        if self.status is not TaskStatus.UPLOADING or self.progress >= cap:
            return False
        self.progress = min(self.progress + step, cap)
        return True

    def succeed(self, result: Optional[StoredFile] = None) -> None:
        self._transition(TaskStatus.SUCCESS)
        self.progress = 100
        self.error = None
        self.result = result

    def fail(self, detail: str) -> None:
        if not detail:
            raise ValueError("error detail cannot be empty")
        self._transition(TaskStatus.ERROR)
        self.progress = 0
        self.error = detail


@dataclass
class UploadResult:
    """Represents the result of a single file upload."""
    task_id: str
    file_name: str
    success: bool
    error: Optional[str] = None
    size_bytes: Optional[int] = None
    stored: Optional[StoredFile] = None


@dataclass
class UploadSummary:
    """Represents a summary of one start_upload batch."""
    upload_id: str
    total_files: int
    successful_uploads: int
    failed_uploads: int
    results: List[UploadResult]


@dataclass(frozen=True)
class StoredObject:
    """Server-side record of a committed object."""
    storage_name: str
    original_name: str
    content_type: str
    size: int
    path: str
    public_url: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "name": self.original_name,
            "size": self.size,
            "type": self.content_type,
            "path": self.path,
            "url": self.public_url,
        }
