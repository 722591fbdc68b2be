"""
CSV schema definition and header validation.

The export format is fixed: ten columns in a fixed order with fixed names.
Header validation runs before any row is parsed.
"""

import csv
import io
from typing import List, Tuple

from .errors import FormatError


EXPECTED_HEADERS: Tuple[str, ...] = (
    "Date",
    "Kind",
    "Model",
    "Max Mode",
    "Input (w/ Cache Write)",
    "Input (w/o Cache Write)",
    "Cache Read",
    "Output Tokens",
    "Total Tokens",
    "Cost",
)

COLUMN_COUNT = len(EXPECTED_HEADERS)

_BOM = "\ufeff"


def strip_bom(text: str) -> str:
    """Drop a leading UTF-8 byte order mark, if present."""
    return text[1:] if text.startswith(_BOM) else text


def read_header(text: str) -> List[str]:
    """Return the header row of ``text`` split into fields."""
    reader = csv.reader(io.StringIO(strip_bom(text)))
    try:
        return next(reader, [])
    except csv.Error as e:
        raise malformed_csv(reader, e) from e


def malformed_csv(reader, error: csv.Error) -> FormatError:
    """Wrap a low-level reader error with the line it stopped on."""
    return FormatError(f"Malformed CSV at line {reader.line_num}: {error}", line=reader.line_num)


def validate_format(text: str) -> None:
    """Verify that ``text`` starts with the expected ten-column header.

    Pure function of its input; calling it twice gives the same outcome.

    Args:
        text: Raw CSV content

    Raises:
        FormatError: If the text is empty, the header has the wrong number
            of columns, or a header name differs from the expected one
    """
    if not text or not text.strip():
        raise FormatError("CSV content is empty")

    header = read_header(text)
    if len(header) != COLUMN_COUNT:
        raise FormatError(
            f"Invalid CSV format. Expected {COLUMN_COUNT} columns, found {len(header)}",
            line=1,
        )

    for position, (expected, actual) in enumerate(zip(EXPECTED_HEADERS, header), start=1):
        if expected != actual:
            raise FormatError(
                f"Invalid header at column {position}. Expected '{expected}', found '{actual}'",
                line=1,
                column=position,
            )
