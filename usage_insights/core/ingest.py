"""
File ingestion: upload checks, parsing and storing.

An upload is checked (extension, size, encoding), parsed, validated, and
then either replaces the stored record set or is merged into it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from .errors import UploadError
from .parser import parse_csv
from .processor import DataProcessor, UsageSummary
from usage_insights.config.loader import IngestConfig
from usage_insights.storage.models import UsageRecord
from usage_insights.storage.repository import UsageStore

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB


class IngestMode(Enum):
    """How parsed records are applied to the store."""
    REPLACE = "replace"
    APPEND = "append"


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one ingest call."""
    mode: IngestMode
    parsed_count: int
    stored_count: int
    summary: UsageSummary


def validate_file_size(size: int, max_size: int = MAX_FILE_SIZE) -> None:
    if size > max_size:
        raise UploadError(
            f"File size ({size} bytes) exceeds maximum allowed size ({max_size} bytes)"
        )


def validate_csv_extension(filename: str, allowed: Iterable[str] = (".csv",)) -> None:
    if not filename.lower().endswith(tuple(ext.lower() for ext in allowed)):
        raise UploadError("Only CSV files are allowed")


def decode_upload(data: bytes) -> str:
    """Decode uploaded bytes as UTF-8, dropping a leading BOM."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise UploadError("File must be UTF-8 encoded")


class IngestService:
    """Runs uploads through checks, parsing and validation into a store.

    The store is supplied by the caller so several services (or threads)
    can share it.
    """

    def __init__(
        self,
        store: UsageStore,
        processor: Optional[DataProcessor] = None,
        config: Optional[IngestConfig] = None
    ):
        self.store = store
        self.processor = processor or DataProcessor()
        self.config = config or IngestConfig()

    def load(self, filename: str, data: bytes) -> List[UsageRecord]:
        """Check, decode, parse and validate an upload without storing it.

        Raises:
            UploadError: If the file fails the pre-parse checks
            UsageInsightsError: Any parse or validation failure
        """
        validate_csv_extension(filename, self.config.allowed_extensions)
        validate_file_size(len(data), self.config.max_file_size_bytes)
        text = decode_upload(data)

        records = parse_csv(text)
        self.processor.validate_usage_data(records)
        logger.debug("Loaded %d records from %s", len(records), filename)
        return records

    def ingest(
        self,
        filename: str,
        data: bytes,
        mode: IngestMode = IngestMode.REPLACE
    ) -> IngestResult:
        """Load an upload and apply it to the store.

        Nothing is written to the store unless the whole file is valid.

        Args:
            filename: Original file name, used for the extension check
            data: Raw file content
            mode: Replace the stored set or merge into it

        Returns:
            IngestResult with counts and a summary of the stored set
        """
        records = self.load(filename, data)

        if mode is IngestMode.APPEND:
            stored = self.store.append_and_merge(records)
        else:
            self.store.replace(records)
            stored = records

        return IngestResult(
            mode=mode,
            parsed_count=len(records),
            stored_count=len(stored),
            summary=self.processor.calculate_summary(stored),
        )
