"""
Server-side ingestion: validate one incoming file and commit it to storage.
"""
import logging
from typing import Optional

from tenacity import (
    retry,
    stop_after_attempt,
    retry_if_exception_type,
    before_log,
    after_log
)

from .config import MIB
from .errors import NameCollisionError, RequestError, StorageError
from .models import StoredObject
from .naming import derive_storage_name
from .storage import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * MIB


def _format_limit(max_file_size: int) -> str:
    size_mb = max_file_size / MIB
    return f"{size_mb:g}MB"


class IngestionHandler:
    """Validates uploaded files and writes them to an object store."""

    def __init__(self, store: ObjectStore, max_file_size: int = DEFAULT_MAX_FILE_SIZE):
        """Initialize the ingestion handler.

        Args:
            store: Object store that receives committed files
            max_file_size: Largest accepted file, in bytes
        """
        self.store = store
        self.max_file_size = max_file_size

    # Each attempt derives a fresh name; a collision is retried once.
    @retry(
        retry=retry_if_exception_type(NameCollisionError),
        stop=stop_after_attempt(2),
        reraise=True,
        before=before_log(logger, logging.DEBUG),
        after=after_log(logger, logging.DEBUG)
    )
    def _commit(self, file_name: str, content: bytes, content_type: str) -> str:
        storage_name = derive_storage_name(file_name)
        logger.info(f"Uploading as: {storage_name}")
        return self.store.put(storage_name, content, content_type, overwrite=False)

    def check_size(self, size: int) -> None:
        """Reject a file whose size exceeds the configured limit.

        Raises:
            RequestError: The file is too large
        """
        if size > self.max_file_size:
            logger.error(f"File too large: {size} bytes")
            raise RequestError(f"File exceeds {_format_limit(self.max_file_size)} limit")

    def ingest(self, file_name: Optional[str], content: Optional[bytes],
               content_type: Optional[str] = None,
               declared_size: Optional[int] = None) -> StoredObject:
        """Validate a file and commit it under a unique storage name.

        Args:
            file_name: Name supplied by the uploader
            content: Raw file bytes, None when no file was sent
            content_type: Declared MIME type
            declared_size: Size reported by the transport, if any

        Returns:
            StoredObject describing the committed file

        Raises:
            RequestError: No file was provided or it exceeds the size limit
            StorageError: The object store failed the write
        """
        if content is None:
            logger.error("No file provided in request")
            raise RequestError("No file provided")

        size = declared_size if declared_size is not None else len(content)
        content_type = content_type or ""
        logger.info(f"Processing file: {file_name}, size: {size}, type: {content_type}")

        self.check_size(max(size, len(content)))

        try:
            path = self._commit(file_name or "", content, content_type)
        except StorageError as e:
            logger.error(f"Storage upload error for {file_name}: {e.message}")
            raise StorageError(f"Upload failed: {e.message}") from e

        url = self.store.public_url(path)
        logger.info(f"File uploaded successfully: {file_name} -> {path}")

        return StoredObject(
            storage_name=path,
            original_name=file_name or "",
            content_type=content_type,
            size=size,
            path=path,
            public_url=url
        )
