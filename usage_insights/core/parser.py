"""
CSV row parsing into typed usage records.

Parsing is all-or-nothing: the first bad row aborts the whole call.
"""

import csv
import io
import logging
import math
from typing import List

from .errors import ConsistencyError, EmptyDataError, FieldParseError, FormatError
from .schema import COLUMN_COUNT, EXPECTED_HEADERS, malformed_csv, strip_bom, validate_format
from usage_insights.storage.models import UsageRecord

logger = logging.getLogger(__name__)

TRUE_LITERALS = frozenset({"yes", "true", "1"})
FALSE_LITERALS = frozenset({"no", "false", "0"})


def parse_csv(text: str) -> List[UsageRecord]:
    """Parse CSV export text into usage records.

    The header is validated first. Each data row must have ten fields, a
    non-empty date, a recognised Max Mode literal, non-negative numbers, and
    a token breakdown that adds up to the stated total.

    Args:
        text: Raw CSV content including the header row

    Returns:
        One record per data row, in file order

    Raises:
        FormatError: If the header or a row has the wrong shape, or the
            text cannot be split into CSV rows at all
        FieldParseError: If a field cannot be converted
        ConsistencyError: If a row's token breakdown does not match its total
        EmptyDataError: If there are no data rows after the header
    """
    validate_format(text)

    reader = csv.reader(io.StringIO(strip_bom(text)))

    records = []
    try:
        next(reader)  # header, already validated
        for index, row in enumerate(reader):
            if not row:
                continue
            records.append(parse_row(row, line=index + 2))
    except csv.Error as e:
        raise malformed_csv(reader, e) from e

    if not records:
        raise EmptyDataError("CSV file contains no data rows")

    logger.debug("Parsed %d usage records", len(records))
    return records


def parse_row(row: List[str], line: int) -> UsageRecord:
    """Convert a single CSV row into a UsageRecord.

    Args:
        row: Raw field values
        line: 1-based line number used in error messages

    Returns:
        The typed record
    """
    if len(row) != COLUMN_COUNT:
        raise FormatError(
            f"Invalid row at line {line}. Expected {COLUMN_COUNT} columns, found {len(row)}",
            line=line,
        )

    date, kind, model, max_mode_raw = row[0], row[1], row[2], row[3]
    if not date.strip():
        raise FieldParseError(EXPECTED_HEADERS[0], line, date, "date cannot be empty")

    input_with_cache = _parse_count(row[4], EXPECTED_HEADERS[4], line)
    input_without_cache = _parse_count(row[5], EXPECTED_HEADERS[5], line)
    cache_read = _parse_count(row[6], EXPECTED_HEADERS[6], line)
    output_tokens = _parse_count(row[7], EXPECTED_HEADERS[7], line)
    total_tokens = _parse_count(row[8], EXPECTED_HEADERS[8], line)

    record = UsageRecord(
        date=date,
        kind=kind,
        model=model,
        max_mode=_parse_max_mode(max_mode_raw, line),
        input_with_cache=input_with_cache,
        input_without_cache=input_without_cache,
        cache_read=cache_read,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        cost=_parse_cost(row[9], line),
    )

    if record.token_sum != record.total_tokens:
        raise ConsistencyError(line, record.token_sum, record.total_tokens)

    return record


def _parse_max_mode(value: str, line: int) -> bool:
    literal = value.strip().lower()
    if literal in TRUE_LITERALS:
        return True
    if literal in FALSE_LITERALS:
        return False
    raise FieldParseError(
        EXPECTED_HEADERS[3], line, value, "expected one of yes/no, true/false, 1/0"
    )


def _parse_count(value: str, field: str, line: int) -> int:
    text = value.strip()
    digits = text[1:] if text.startswith("-") else text
    # int() alone would also take "+5", "1_000" and non-ASCII digits
    if not (digits.isascii() and digits.isdigit()):
        raise FieldParseError(field, line, value, "not a valid integer")
    number = int(text)
    if number < 0:
        raise FieldParseError(field, line, value, "must be non-negative")
    return number


def _parse_cost(value: str, line: int) -> float:
    field = EXPECTED_HEADERS[9]
    try:
        cost = float(value.strip())
    except ValueError:
        raise FieldParseError(field, line, value, "not a valid number")
    if not math.isfinite(cost):
        raise FieldParseError(field, line, value, "must be a finite number")
    if cost < 0:
        raise FieldParseError(field, line, value, "must be non-negative")
    return cost
