"""
Module for turning user-selected paths into a list of files to upload.
"""
import logging
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


class FileScanner:
    """Expands files and folders into an ordered list of files."""

    def scan_folder(self, folder: Path, pattern: str = "*") -> List[Path]:
        """Scan a folder for files matching the pattern.

        Args:
            folder: Path to the folder to scan
            pattern: Glob pattern to match files against

        Returns:
            Sorted list of file paths found
        """
        if not folder.exists():
            logger.error(f"Folder does not exist: {folder}")
            return []

        return sorted(p for p in folder.glob(pattern) if p.is_file())

    def scan_paths(self, paths: Iterable[Path], pattern: str = "*") -> List[Path]:
        """Collect files from a mix of file and folder paths.

        Files are kept as given; folders are expanded with ``pattern``.
        Duplicates are dropped, first occurrence wins.

        Args:
            paths: Files and folders selected by the user
            pattern: Glob pattern applied inside folders

        Returns:
            List of file paths in selection order
        """
        seen = set()
        files = []
        for path in paths:
            path = Path(path)
            if path.is_dir():
                candidates = self.scan_folder(path, pattern)
            elif path.is_file():
                candidates = [path]
            else:
                logger.error(f"Path does not exist: {path}")
                continue

            for candidate in candidates:
                key = candidate.resolve()
                if key not in seen:
                    seen.add(key)
                    files.append(candidate)
        return files
