"""
Configuration for the upload client and the ingestion service.
"""
import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


def load_config(config_file: Optional[Path] = None) -> dict:
    """Load configuration from a JSON file.

    Args:
        config_file: Path to config file

    Returns:
        Dictionary of configuration values
    """
    if not config_file:
        return {}

    try:
        with open(config_file) as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading config file: {e}")
        return {}


def _known_keys(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names and v is not None}


@dataclass
class ClientConfig:
    """Settings for the client-side upload queue."""
    base_url: str = "http://localhost:8000"
    endpoint: str = "/api/upload"
    max_file_size_mb: float = 10
    accepted_types: List[str] = field(default_factory=lambda: ["*"])
    max_concurrency: Optional[int] = None
    progress_interval: float = 0.2
    timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_file_size_mb <= 0:
            raise ValueError("max_file_size_mb must be positive")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if not self.accepted_types:
            self.accepted_types = ["*"]

    @property
    def max_file_size(self) -> int:
        return int(self.max_file_size_mb * MIB)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        return cls(**_known_keys(cls, data))


@dataclass
class ServiceConfig:
    """Settings for the ingestion service and its object store."""
    bucket: str = "uploads"
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    public_base_url: Optional[str] = None
    max_file_size_mb: float = 10
    route: str = "/api/upload"

    def __post_init__(self):
        if not self.bucket:
            raise ValueError("bucket cannot be empty")
        if self.max_file_size_mb <= 0:
            raise ValueError("max_file_size_mb must be positive")

    @property
    def max_file_size(self) -> int:
        return int(self.max_file_size_mb * MIB)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceConfig":
        return cls(**_known_keys(cls, data))
