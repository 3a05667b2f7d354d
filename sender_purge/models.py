"""
Shared data models for Gmail Sender Purge
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ProcessingMode(Enum):
    """How the next batch is removed"""
    DELETE_FIRST = "delete_first"
    TRASH_ONLY = "trash_only"


class BatchAction(Enum):
    """Operation a batch was finally submitted with"""
    DELETE = "delete"
    TRASH = "trash"


@dataclass
class PurgeConfig:
    """Configuration for a purge run"""
    batch_size: int = 1000  # batchDelete/batchModify accept at most 1000 ids
    page_size: int = 500  # messages.list maxResults ceiling
    pause_seconds: float = 0.5
    max_pages: int = 1000
    read_timeout: float = 60
    batch_timeout: float = 120

    @classmethod
    def from_env(cls) -> "PurgeConfig":
        """Build config, letting MAX_PAGES override the pagination cap"""
        config = cls()
        max_pages = os.getenv("MAX_PAGES")
        if max_pages:
            config.max_pages = int(max_pages)
        return config


@dataclass
class BatchResult:
    """Outcome of one batch"""
    number: int
    size: int
    action: BatchAction
    success: bool
    status: Optional[int] = None
    error: str = ""
    fell_back: bool = False


@dataclass
class PurgeStats:
    """Running counters for a purge run"""
    processed: int = 0
    failed: int = 0
    batches: int = 0
    mode: ProcessingMode = ProcessingMode.DELETE_FIRST
    results: List[BatchResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.failed
