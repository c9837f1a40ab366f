"""
Module for journaling the outcome of upload batches.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
import threading

from .models import UploadSummary

logger = logging.getLogger(__name__)


class UploadTracker:
    """Keeps a history of upload batch summaries, optionally on disk."""

    def __init__(self, log_dir: Optional[Path] = None):
        """Initialize the upload tracker.

        Args:
            log_dir: Directory to store summary files. If None, keeps them in memory only.
        """
        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._summaries: Dict[str, UploadSummary] = {}
        self._lock = threading.Lock()

    @property
    def summaries(self) -> List[UploadSummary]:
        with self._lock:
            return list(self._summaries.values())

    def get_summary(self, upload_id: str) -> Optional[UploadSummary]:
        """Get the recorded summary of a batch.

        Args:
            upload_id: Batch identifier

        Returns:
            UploadSummary if found, None otherwise
        """
        with self._lock:
            return self._summaries.get(upload_id)

    def _get_log_path(self, upload_id: str) -> Optional[Path]:
        if not self.log_dir:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.log_dir / f"upload_{upload_id}_{timestamp}.json"

    def log_upload_summary(self, summary: UploadSummary) -> Optional[Path]:
        """Record the summary of a completed batch.

        Args:
            summary: UploadSummary object

        Returns:
            Path of the written summary file, if a log directory is set
        """
        with self._lock:
            self._summaries[summary.upload_id] = summary

        log_data = {
            "timestamp": datetime.now().isoformat(),
            "upload_id": summary.upload_id,
            "total_files": summary.total_files,
            "successful_uploads": summary.successful_uploads,
            "failed_uploads": summary.failed_uploads,
            "results": [
                {
                    "task_id": r.task_id,
                    "file_name": r.file_name,
                    "success": r.success,
                    "error": r.error,
                    "size_bytes": r.size_bytes,
                    "path": r.stored.path if r.stored else None,
                    "url": r.stored.url if r.stored else None
                }
                for r in summary.results
            ]
        }

        log_path = self._get_log_path(summary.upload_id)
        if log_path:
            with open(log_path, 'w') as f:
                json.dump(log_data, f, indent=2)

        logger.info(
            f"Completed upload {summary.upload_id}: "
            f"{summary.successful_uploads}/{summary.total_files} files uploaded successfully"
        )
        return log_path
