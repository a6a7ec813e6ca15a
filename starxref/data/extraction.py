"""
Integer extraction from VOTable responses.

VizieR and SIMBAD answer with VOTable documents. We only ever need one or a
handful of values out of them, so these helpers scan the text for fixed markers
instead of parsing the XML. Every function returns None (or an empty list) on
malformed input and never raises.
"""

import re
from typing import List, Optional

from ..config import SAO_IDENTIFIER_TAG

TD_OPEN = "<TD>"
TD_CLOSE = "</TD>"
TABLEDATA_MARKER = "<TABLEDATA>"
DECIMAL_DIGITS = "0123456789"

_FIELD_NAME_RE = re.compile(r'<FIELD\b[^>]*?\bname="([^"]*)"', re.IGNORECASE)
_ROW_RE = re.compile(r'<TR\b[^>]*>(.*?)</TR>', re.IGNORECASE | re.DOTALL)
_CELL_RE = re.compile(r'<TD\b[^>]*/>|<TD\b[^>]*>(.*?)</TD>', re.IGNORECASE | re.DOTALL)


def _leading_digits(text: str, start: int = 0) -> str:
    end = start
    while end < len(text) and text[end] in DECIMAL_DIGITS:
        end += 1
    return text[start:end]


def extract_tagged_integer(text: Optional[str], tag: str = SAO_IDENTIFIER_TAG) -> Optional[int]:
    """
    Find the first occurrence of tag and parse the digits that immediately follow it.

    Args:
        text: Response body
        tag: Marker preceding the number (e.g. "SAO ")

    Returns:
        The integer, or None if the tag is absent or not directly followed by a digit.
    """
    if not text or not tag:
        return None

    pos = text.find(tag)
    if pos == -1:
        return None

    digits = _leading_digits(text, pos + len(tag))
    if not digits:
        return None
    return int(digits)


def extract_first_cell_integer(text: Optional[str],
                               open_marker: str = TD_OPEN,
                               close_marker: str = TD_CLOSE) -> Optional[int]:
    """
    Parse the first table cell delimited by open_marker/close_marker as an integer.

    All whitespace inside the cell is removed. The cell must then be non-empty
    and start with a decimal digit; its leading digit run is the value.

    Returns:
        The integer, or None if the markers are missing or the cell is not numeric.
    """
    if not text:
        return None

    start = text.find(open_marker)
    if start == -1:
        return None
    start += len(open_marker)

    end = text.find(close_marker, start)
    if end == -1:
        return None

    cell = "".join(text[start:end].split())
    digits = _leading_digits(cell)
    if not digits:
        return None
    return int(digits)


def extract_data_section(text: Optional[str]) -> str:
    """
    Return the part of a VOTable after <TABLEDATA>, or the whole text if absent.

    Row-level parsing starts here so <FIELD> and <INFO> headers are never read as cells.
    """
    if not text:
        return ""
    pos = text.find(TABLEDATA_MARKER)
    if pos == -1:
        return text
    return text[pos + len(TABLEDATA_MARKER):]


def extract_field_names(text: Optional[str]) -> List[str]:
    """Names of the <FIELD> declarations, in document order."""
    if not text:
        return []
    return _FIELD_NAME_RE.findall(text)


def extract_first_row_cells(text: Optional[str]) -> List[str]:
    """Stripped cell values of the first <TR> data row (empty cells as '')."""
    if not text:
        return []
    row = _ROW_RE.search(extract_data_section(text))
    if not row:
        return []
    return [(match.group(1) or "").strip() for match in _CELL_RE.finditer(row.group(1))]
