"""
In-memory store for the currently loaded record set.

Callers create a store and pass it to whatever needs it; there is no
shared module-level instance.
"""

import logging
import threading
from typing import List, Optional, Sequence

from .models import UsageRecord
from usage_insights.core.processor import DataProcessor

logger = logging.getLogger(__name__)


class UsageStore:
    """Holds the current record set behind a single lock.

    Readers get an independent copy through ``snapshot``. Writers either
    replace the whole set or append-and-merge, each as one locked step, so
    a reader never sees a half-applied write.
    """

    def __init__(self, processor: Optional[DataProcessor] = None):
        """Initialize an empty store.

        Args:
            processor: DataProcessor used for merging; a default one is
                created when omitted
        """
        self._processor = processor or DataProcessor()
        self._records: List[UsageRecord] = []
        self._lock = threading.RLock()

    def snapshot(self) -> List[UsageRecord]:
        """Return a copy of the current record set."""
        with self._lock:
            return list(self._records)

    def replace(self, records: Sequence[UsageRecord]) -> None:
        """Replace the whole record set."""
        with self._lock:
            self._records = list(records)
            logger.info("Replaced stored usage data with %d records", len(self._records))

    def append_and_merge(self, new: Sequence[UsageRecord]) -> List[UsageRecord]:
        """Merge new records into the current set and store the result.

        Returns:
            Copy of the merged record set
        """
        with self._lock:
            self._records = self._processor.merge_data(self._records, new)
            logger.info(
                "Merged %d new records, store now holds %d", len(new), len(self._records)
            )
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
