"""
Delimited-text parsing for the historical archive.

A lenient reader: quote characters toggle a quoted state that
suppresses delimiter splitting, every field is trimmed, and rows whose field
count differs from the header are dropped.
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

logger = logging.getLogger(__name__)

QUOTE = '"'


def parse_csv_line(line: str, delimiter: str = ",") -> List[str]:
    """
    Split one line into trimmed fields.

    Args:
        line: A single line of delimited text
        delimiter: Field separator

    Returns:
        List[str]: Field values with quote characters removed
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def parse_csv(content: str, delimiter: str = ",") -> List[Dict[str, str]]:
    """
    Parse delimited text with a header row into row mappings.

    Args:
        content: Full file content
        delimiter: Field separator

    Returns:
        List[Dict[str, str]]: One mapping per row, keys in header order
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        return []

    headers = parse_csv_line(lines[0], delimiter)
    rows: List[Dict[str, str]] = []
    dropped = 0

    for line in lines[1:]:
        values = parse_csv_line(line, delimiter)
        if len(values) != len(headers):
            dropped += 1
            continue
        rows.append(dict(zip(headers, values)))

    if dropped:
        logger.debug(f"Dropped {dropped} rows with a field count different from the header")

    return rows


def read_csv_file(path: Union[str, Path], delimiter: str = ",") -> List[Dict[str, str]]:
    """
    Read and parse a delimited file.

    The whole file is read and the handle closed before parsing begins.

    Raises:
        FileNotFoundError: If the file does not exist
        OSError: If the file cannot be read
    """
    with open(path, "r", encoding="utf-8-sig") as f:
        content = f.read()
    return parse_csv(content, delimiter)
