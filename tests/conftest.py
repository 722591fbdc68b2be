"""
Shared fixtures for usage-insights tests.
"""

import pytest

from usage_insights.storage.models import UsageRecord

HEADER = (
    "Date,Kind,Model,Max Mode,Input (w/ Cache Write),Input (w/o Cache Write),"
    "Cache Read,Output Tokens,Total Tokens,Cost"
)


@pytest.fixture
def csv_header():
    return HEADER


@pytest.fixture
def sample_csv():
    """Two consistent rows on the same day at different hours."""
    return (
        HEADER + "\n"
        "2024-01-01T10:00:00Z,Included,auto,No,100,50,25,75,250,0.05\n"
        "2024-01-01T11:00:00Z,Included,gpt-4,Yes,200,100,50,150,500,0.15\n"
    )


@pytest.fixture
def make_record():
    """Factory for records whose token breakdown is always consistent."""
    def _make(
        date="2024-01-01T10:00:00Z",
        model="gpt-4",
        cost=0.10,
        input_with_cache=100,
        input_without_cache=50,
        cache_read=25,
        output_tokens=75,
        total_tokens=None,
        kind="Included",
        max_mode=False,
    ):
        if total_tokens is None:
            total_tokens = input_with_cache + input_without_cache + cache_read + output_tokens
        return UsageRecord(
            date=date,
            kind=kind,
            model=model,
            max_mode=max_mode,
            input_with_cache=input_with_cache,
            input_without_cache=input_without_cache,
            cache_read=cache_read,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            cost=cost,
        )
    return _make
