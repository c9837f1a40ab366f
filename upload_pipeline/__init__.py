from .api import create_app
from .config import ClientConfig, ServiceConfig
from .ingestion import IngestionHandler
from .models import FilePayload, StoredObject, TaskStatus, UploadResult, UploadSummary, UploadTask
from .storage import S3ObjectStore
from .tracker import UploadTracker
from .upload_queue import UploadQueue

__version__ = "0.1.0"

__all__ = [
    "create_app",
    "ClientConfig",
    "ServiceConfig",
    "IngestionHandler",
    "FilePayload",
    "StoredObject",
    "TaskStatus",
    "UploadResult",
    "UploadSummary",
    "UploadTask",
    "S3ObjectStore",
    "UploadTracker",
    "UploadQueue",
]
