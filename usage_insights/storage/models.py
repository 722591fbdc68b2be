"""
Data models for the record store.

Defines the typed usage record produced by the CSV parser.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class UsageRecord:
    """Immutable record of one billed API call.

    Created once by the parser and never modified afterwards. The token
    breakdown always adds up to ``total_tokens`` for records the parser
    hands out.
    """
    date: str
    kind: str
    model: str
    max_mode: bool
    input_with_cache: int
    input_without_cache: int
    cache_read: int
    output_tokens: int
    total_tokens: int
    cost: float

    @property
    def token_sum(self) -> int:
        """Sum of the individual token columns."""
        return (
            self.input_with_cache
            + self.input_without_cache
            + self.cache_read
            + self.output_tokens
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
