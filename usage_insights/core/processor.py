"""
Summary aggregation, per-model breakdown, and incremental merging.

Every function here reads a record sequence and returns a fresh value;
input records are never modified.
"""

import functools
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence

from .dates import DATE_TIME_SEPARATORS
from .errors import RecordValidationError
from usage_insights.storage.models import UsageRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelStats:
    """Aggregate over all records sharing a model name."""
    model: str
    total_requests: int
    total_tokens: int
    total_cost: float
    average_tokens_per_request: float
    cache_efficiency: float  # cache_read share of all input tokens, in percent

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DateRange:
    """Lexicographic min/max of record dates."""
    start: str = ""
    end: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UsageSummary:
    """Totals across a record set."""
    total_cost: float = 0.0
    total_tokens: int = 0
    average_cost_per_day: float = 0.0
    most_used_model: str = ""
    date_range: DateRange = field(default_factory=DateRange)
    model_breakdown: List[ModelStats] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def day_key(date: str) -> str:
    """Calendar-day part of a timestamp.

    For ``YYYY-MM-DD`` followed by any RFC3339 date/time separator this is the
    first ten characters, matching the day the statistics group by. Other
    text is cut at the first 'T', or kept whole.
    """
    date = date.strip()
    if len(date) > 10 and date[10] in DATE_TIME_SEPARATORS:
        return date[:10]
    return date.split("T", 1)[0]


def _compare_merge_keys(a: UsageRecord, b: UsageRecord) -> int:
    for left, right in ((a.date, b.date), (a.model, b.model)):
        if left < right:
            return -1
        if left > right:
            return 1
    # NaN costs are incomparable and treated as equal
    if a.cost < b.cost:
        return -1
    if a.cost > b.cost:
        return 1
    return 0


def _is_duplicate(a: UsageRecord, b: UsageRecord) -> bool:
    return (
        a.date == b.date
        and a.model == b.model
        and a.cost == b.cost
        and a.total_tokens == b.total_tokens
    )


class DataProcessor:
    """Computes summaries and model breakdowns, validates and merges record sets."""

    def calculate_summary(self, records: Sequence[UsageRecord]) -> UsageSummary:
        """Calculate totals, date range and model breakdown.

        Average cost per day divides total cost by the number of distinct
        calendar days (see day_key). An empty input
        yields a zeroed summary.

        Args:
            records: Usage records to summarise

        Returns:
            UsageSummary snapshot
        """
        if not records:
            return UsageSummary()

        total_cost = sum(r.cost for r in records)
        total_tokens = sum(r.total_tokens for r in records)

        dates = [r.date for r in records]
        days = {day_key(d) for d in dates}
        average_cost_per_day = total_cost / len(days) if days else 0.0

        model_breakdown = self.calculate_model_stats(records)
        most_used = max(model_breakdown, key=lambda s: s.total_requests)

        return UsageSummary(
            total_cost=total_cost,
            total_tokens=total_tokens,
            average_cost_per_day=average_cost_per_day,
            most_used_model=most_used.model,
            date_range=DateRange(start=min(dates), end=max(dates)),
            model_breakdown=model_breakdown,
        )

    def calculate_model_stats(self, records: Sequence[UsageRecord]) -> List[ModelStats]:
        """Group records by model and compute per-model statistics.

        Returns:
            ModelStats sorted by request count, most used first. Models
            with equal counts keep the order in which they first appear.
        """
        groups: Dict[str, List[UsageRecord]] = {}
        for record in records:
            groups.setdefault(record.model, []).append(record)

        stats = []
        for model, group in groups.items():
            total_requests = len(group)
            total_tokens = sum(r.total_tokens for r in group)
            stats.append(ModelStats(
                model=model,
                total_requests=total_requests,
                total_tokens=total_tokens,
                total_cost=sum(r.cost for r in group),
                average_tokens_per_request=total_tokens / total_requests,
                cache_efficiency=_cache_efficiency(group),
            ))

        stats.sort(key=lambda s: s.total_requests, reverse=True)
        return stats

    def merge_data(
        self,
        existing: Sequence[UsageRecord],
        new: Sequence[UsageRecord]
    ) -> List[UsageRecord]:
        """Merge two record sets, sorting and collapsing duplicates.

        Records are sorted by (date, model, cost). A record is dropped when
        it equals its immediate predecessor on (date, model, cost,
        total_tokens); the first of each run is kept. This is a sorted
        adjacent dedup, not a set dedup.

        Args:
            existing: Records already held
            new: Newly parsed records

        Returns:
            New merged list
        """
        combined = sorted(
            list(existing) + list(new),
            key=functools.cmp_to_key(_compare_merge_keys)
        )

        merged: List[UsageRecord] = []
        for record in combined:
            if merged and _is_duplicate(merged[-1], record):
                continue
            merged.append(record)

        logger.debug(
            "Merged %d + %d records into %d (%d duplicates dropped)",
            len(existing), len(new), len(merged), len(combined) - len(merged)
        )
        return merged

    def validate_usage_data(self, records: Sequence[UsageRecord]) -> None:
        """Re-check parsed records for consistency.

        Raises:
            RecordValidationError: For the first record (in sequence order)
                with a token mismatch, a negative cost, or an empty date
        """
        for index, record in enumerate(records):
            if record.token_sum != record.total_tokens:
                raise RecordValidationError(
                    index,
                    f"Token calculation mismatch. Sum of individual tokens "
                    f"({record.token_sum}) doesn't match Total Tokens ({record.total_tokens})"
                )
            if record.cost < 0:
                raise RecordValidationError(index, f"Negative cost {record.cost}")
            if not record.date:
                raise RecordValidationError(index, "Empty date")


def _cache_efficiency(records: Sequence[UsageRecord]) -> float:
    """cache_read / (cache_read + input_with_cache + input_without_cache) * 100."""
    total_input = sum(r.input_with_cache + r.input_without_cache for r in records)
    total_cache_read = sum(r.cache_read for r in records)
    denominator = total_input + total_cache_read
    if denominator == 0:
        return 0.0
    return total_cache_read / denominator * 100
