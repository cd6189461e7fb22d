"""
Ingestion primitives: everything between raw upload bytes and typed rows.

Responsibilities:
- encoding sniffing (BOM, strict UTF-8, Windows-1252, Latin-1)
- delimiter sniffing on the first line
- bounded-sample row parsing with an exact row count
- per-cell type inference
- label sanitizing for category / period
"""

from __future__ import annotations

import codecs
import csv
import io
import re
import unicodedata
from typing import Dict, List, NamedTuple, Optional, Tuple

from charset_normalizer import from_bytes

from .errors import ParseFailure, UnsupportedFormat
from .log import get_logger
from .models import Cell, CellKind, NULL_CELL
from .rules import (
    DEFAULT_DELIMITER,
    DELIMITER_CANDIDATES,
    ENCODING_HINT_BYTES,
    INT_MAX,
    INT_MIN,
    MAX_FIELD_CHARS,
    SAMPLE_CAP,
)

logger = get_logger(__name__)

csv.field_size_limit(MAX_FIELD_CHARS)

_BOMS = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

# Control, format, private-use and unassigned code points
_STRIPPED_CATEGORIES = frozenset({"Cc", "Cf", "Co", "Cn"})


# --- encoding ---

def _bom_length(raw: bytes) -> int:
    for bom, _ in _BOMS:
        if raw.startswith(bom):
            return len(bom)
    return 0


def sniff_encoding(raw: bytes) -> str:
    """
    Pick the codec to decode an upload with. Never fails.

    Order matters: strict UTF-8 validation has to run before the single-byte
    fallback, otherwise UTF-8 accents come out mangled ("Ñ" as "Ã‘").
    """
    for bom, name in _BOMS:
        if raw.startswith(bom):
            logger.debug("BOM found, using %s", name)
            return name

    try:
        raw.decode("utf-8", errors="strict")
        return "utf-8"
    except UnicodeDecodeError:
        logger.info("Input is not valid UTF-8, trying cp1252")

    try:
        raw.decode("cp1252", errors="strict")
        return "cp1252"
    except UnicodeDecodeError:
        # cp1252 leaves five bytes undefined; latin-1 maps all 256
        logger.info("cp1252 cannot map input, falling back to latin-1")
        return "latin-1"


def decode_bytes(raw: bytes) -> Tuple[str, str]:
    """
    Decode with the sniffed codec, dropping any byte-order mark.

    Without a BOM the codec was already validated strictly. With one, the BOM
    decides the codec and undecodable bytes become U+FFFD instead of failing.
    """
    encoding = sniff_encoding(raw)
    bom = _bom_length(raw)
    text = raw[bom:].decode(encoding, errors="replace" if bom else "strict")
    return text, encoding


def detect_encoding_hint(raw: bytes) -> Optional[str]:
    """charset-normalizer's best guess for the upload, for diagnostics only."""
    match = from_bytes(raw[:ENCODING_HINT_BYTES]).best()
    if match is None:
        return None
    return match.encoding


# --- delimiter ---

def first_line(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return _LINE_BREAK_RE.split(text, maxsplit=1)[0]


def sniff_delimiter(line: Optional[str]) -> str:
    """Strict-majority vote over the candidates on a single line; comma otherwise."""
    if not line:
        return DEFAULT_DELIMITER

    counts = {candidate: line.count(candidate) for candidate in DELIMITER_CANDIDATES}
    for candidate, count in counts.items():
        if all(count > other for name, other in counts.items() if name != candidate):
            return candidate
    return DEFAULT_DELIMITER


# --- cells ---

def infer_cell(raw: Optional[str]) -> Cell:
    """
    Classify one trimmed field.

    Numbers must match the whole string; anything that fails the grammar
    is text, never a partial number.
    """
    if raw is None or not raw.strip():
        return NULL_CELL

    if "." in raw:
        if _FLOAT_RE.fullmatch(raw):
            return Cell(CellKind.FLOAT, float(raw))
        return Cell(CellKind.TEXT, raw)

    if _INT_RE.fullmatch(raw):
        value = int(raw)
        if INT_MIN <= value <= INT_MAX:
            return Cell(CellKind.INTEGER, value)
    return Cell(CellKind.TEXT, raw)


# --- rows ---

class ParsedTable(NamedTuple):
    headers: List[str]
    sample_rows: List[Dict[str, Cell]]
    row_count: int


def _build_row(headers: List[str], fields: List[str]) -> Dict[str, Cell]:
    row: Dict[str, Cell] = {}
    for index, name in enumerate(headers):
        if name in row:
            # duplicate header: the first column keeps the key
            continue
        raw = fields[index].strip() if index < len(fields) else None
        row[name] = infer_cell(raw)
    return row


def parse_rows(text: str, delimiter: str, sample_cap: int = SAMPLE_CAP) -> ParsedTable:
    """
    Split decoded text into headers, a bounded typed sample and the exact row count.

    Every data record is visited once, including those past the sample cap.
    Blank lines are skipped and not counted.
    """
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)

    headers: Optional[List[str]] = None
    sample_rows: List[Dict[str, Cell]] = []
    row_count = 0

    try:
        for fields in reader:
            if not fields:
                continue
            if headers is None:
                headers = [name.strip() for name in fields]
                continue

            row_count += 1
            if len(sample_rows) < sample_cap:
                sample_rows.append(_build_row(headers, fields))
    except csv.Error as exc:
        raise ParseFailure(f"malformed record near line {reader.line_num}: {exc}") from exc

    if headers is None:
        raise UnsupportedFormat("no header record found")

    return ParsedTable(headers, sample_rows, row_count)


# --- labels ---

def sanitize_label(value: Optional[str]) -> Optional[str]:
    """Strip control / invisible characters and surrounding whitespace; blank becomes None."""
    if value is None:
        return None
    cleaned = "".join(ch for ch in value if unicodedata.category(ch) not in _STRIPPED_CATEGORIES)
    cleaned = cleaned.strip()
    return cleaned or None
