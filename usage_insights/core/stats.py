"""
Peak usage, cost efficiency and usage trend statistics.

Only depends on the parsed record type. Records whose date is not an RFC3339
timestamp are left out of the time-based groupings but still count towards
totals and percentiles.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence, Tuple, TypeVar

from .dates import parse_rfc3339
from usage_insights.storage.models import UsageRecord

logger = logging.getLogger(__name__)

GROWTH_THRESHOLD = 5.0  # percent per day

K = TypeVar("K")


@dataclass(frozen=True)
class PeakUsageStats:
    """Busiest hour of day (by tokens) and busiest calendar day (by cost)."""
    peak_hour: int = 0
    peak_day: str = ""
    peak_tokens_per_hour: int = 0
    peak_cost_per_day: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CostEfficiencyStats:
    cost_per_token: float = 0.0
    cost_per_request: float = 0.0
    cache_savings: float = 0.0  # cache_read / (cache_read + input_without_cache), percent

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UsagePercentiles:
    median: int = 0
    p95: int = 0
    p99: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UsageTrendStats:
    daily_growth_rate: float = 0.0
    usage_pattern: str = "stable"
    usage_percentiles: UsagePercentiles = field(default_factory=UsagePercentiles)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComprehensiveStats:
    """The three statistics reports computed over the same record set."""
    peak_usage: PeakUsageStats
    cost_efficiency: CostEfficiencyStats
    usage_trends: UsageTrendStats

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def percentile_index(n: int, p: float) -> int:
    """Index of the p-th percentile in a sorted list of n values.

    Uses ceil(n * p) - 1, clamped to the valid index range.
    """
    if n <= 0:
        raise ValueError("n must be > 0")
    return min(max(math.ceil(n * p) - 1, 0), n - 1)


def _peak(totals: Dict[K, Any]) -> Tuple[K, Any]:
    """Key with the largest value; the lowest key wins ties."""
    best_key = None
    best_value = None
    for key in sorted(totals):
        if best_value is None or totals[key] > best_value:
            best_key, best_value = key, totals[key]
    return best_key, best_value


class StatsCalculator:
    """Computes the comprehensive statistics reports."""

    def calculate_peak_usage(self, records: Sequence[UsageRecord]) -> PeakUsageStats:
        """Find the peak hour of day by tokens and the peak day by cost.

        Hours are collapsed across all days and taken in each timestamp's
        own UTC offset. Unparseable dates are skipped.
        """
        hourly_tokens: Dict[int, int] = {}
        daily_costs: Dict[str, float] = {}

        for record in records:
            timestamp = parse_rfc3339(record.date)
            if timestamp is None:
                logger.debug("Skipping unparseable date for peak usage: %r", record.date)
                continue
            hour = timestamp.hour
            day = timestamp.strftime("%Y-%m-%d")
            hourly_tokens[hour] = hourly_tokens.get(hour, 0) + record.total_tokens
            daily_costs[day] = daily_costs.get(day, 0.0) + record.cost

        if not hourly_tokens:
            return PeakUsageStats()

        peak_hour, peak_tokens = _peak(hourly_tokens)
        peak_day, peak_cost = _peak(daily_costs)

        return PeakUsageStats(
            peak_hour=peak_hour,
            peak_day=peak_day,
            peak_tokens_per_hour=peak_tokens,
            peak_cost_per_day=peak_cost,
        )

    def calculate_cost_efficiency(self, records: Sequence[UsageRecord]) -> CostEfficiencyStats:
        """Cost per token, cost per request and cache savings percentage.

        Cache savings only counts uncached input in its denominator, unlike
        the per-model cache efficiency.
        """
        if not records:
            return CostEfficiencyStats()

        total_cost = sum(r.cost for r in records)
        total_tokens = sum(r.total_tokens for r in records)
        total_cache_read = sum(r.cache_read for r in records)
        total_input_without_cache = sum(r.input_without_cache for r in records)

        cost_per_token = total_cost / total_tokens if total_tokens > 0 else 0.0
        cost_per_request = total_cost / len(records)

        denominator = total_cache_read + total_input_without_cache
        cache_savings = total_cache_read / denominator * 100 if denominator > 0 else 0.0

        return CostEfficiencyStats(
            cost_per_token=cost_per_token,
            cost_per_request=cost_per_request,
            cache_savings=cache_savings,
        )

    def calculate_usage_trends(self, records: Sequence[UsageRecord]) -> UsageTrendStats:
        """Compounded daily growth rate, usage pattern and token percentiles.

        The growth rate compares the first and last calendar day:
        ((last / first) ** (1 / (days - 1)) - 1) * 100. It is 0 with fewer
        than two days or when the first day used no tokens.
        """
        if not records:
            return UsageTrendStats()

        daily_tokens: Dict[str, int] = {}
        for record in records:
            timestamp = parse_rfc3339(record.date)
            if timestamp is None:
                continue
            day = timestamp.strftime("%Y-%m-%d")
            daily_tokens[day] = daily_tokens.get(day, 0) + record.total_tokens

        days = sorted(daily_tokens)
        growth_rate = 0.0
        if len(days) > 1:
            first = daily_tokens[days[0]]
            last = daily_tokens[days[-1]]
            if first > 0:
                growth_rate = ((last / first) ** (1.0 / (len(days) - 1)) - 1.0) * 100

        if growth_rate > GROWTH_THRESHOLD:
            pattern = "increasing"
        elif growth_rate < -GROWTH_THRESHOLD:
            pattern = "decreasing"
        else:
            pattern = "stable"

        return UsageTrendStats(
            daily_growth_rate=growth_rate,
            usage_pattern=pattern,
            usage_percentiles=self.calculate_percentiles(records),
        )

    def calculate_percentiles(self, records: Sequence[UsageRecord]) -> UsagePercentiles:
        """Median, P95 and P99 of total tokens per record."""
        if not records:
            return UsagePercentiles()

        token_counts: List[int] = sorted(r.total_tokens for r in records)
        n = len(token_counts)

        if n % 2 == 0:
            median = (token_counts[n // 2 - 1] + token_counts[n // 2]) // 2
        else:
            median = token_counts[n // 2]

        return UsagePercentiles(
            median=median,
            p95=token_counts[percentile_index(n, 0.95)],
            p99=token_counts[percentile_index(n, 0.99)],
        )

    def calculate_comprehensive_stats(self, records: Sequence[UsageRecord]) -> ComprehensiveStats:
        """Compute all three reports. They share no state."""
        return ComprehensiveStats(
            peak_usage=self.calculate_peak_usage(records),
            cost_efficiency=self.calculate_cost_efficiency(records),
            usage_trends=self.calculate_usage_trends(records),
        )
