"""Table normalizer - turns extraction webhook responses into rectangular tables.

Stateless. The extraction workflow may answer with a table, a list of
records, a wrapper object, CSV text or an arbitrary nested document; every
shape is reduced to ``list[list[str]]`` with the header in row 0, or rejected
with ``NormalizationError``.

Shapes are recognised in a fixed priority order and the first matching rule
wins:

1. non-JSON body                      -> rejected
2. array of arrays                    -> used as-is
   array of objects                   -> header from the first object's keys
3. object with a known table field    -> that field, read with the array rules
   object with ``csv``/``csvData``    -> naive CSV split
   any other object                   -> flattened ``Field``/``Value`` table
4. anything else                      -> rejected
"""

import json
import logging
import re
from typing import Any, Dict, List, Union

from core.exceptions import NormalizationError

logger = logging.getLogger(__name__)

Table = List[List[str]]

# Checked in order; the first non-null value is taken as the table.
DIRECT_TABLE_FIELDS = (
    "excelData",
    "data",
    "result",
    "output",
    "extractedData",
    "table",
    "rows",
    "tableData",
    "spreadsheet",
)

# Fallback: the first of these holding a non-empty array.
TABLE_LIKE_FIELDS = ("table", "rows", "tableData", "spreadsheet")

CSV_FIELDS = ("csv", "csvData")

FIELD_VALUE_HEADER = ["Field", "Value"]

_MISSING = object()
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _scalar_text(value: Any) -> str:
    """String form of a JSON scalar."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def _json_text(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _cell_text(value: Any, trim: bool = False) -> str:
    """Render one table cell; containers become their JSON text."""
    if isinstance(value, (dict, list)):
        return _json_text(value)
    text = _scalar_text(value)
    return text.strip() if trim else text


def humanize_field_name(name: str) -> str:
    """``invoice_totalAmount`` -> ``Invoice Total Amount``."""
    spaced = _CAMEL_BOUNDARY.sub(" ", name.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def rectangularize(table: Table) -> Table:
    """Pad or truncate every row to the width of the header row."""
    if not table:
        return []
    width = len(table[0])
    return [
        (list(row) + [""] * (width - len(row)))[:width]
        for row in table
    ]


class TableNormalizer:
    """Converts parsed webhook payloads into tables."""

    @classmethod
    def from_value(cls, value: Any) -> Table:
        """Normalize an already-parsed JSON value."""
        if isinstance(value, list):
            return cls.from_array(value)
        if isinstance(value, dict):
            return cls.from_object(value)
        raise NormalizationError(
            f"Unsupported response type: {type(value).__name__}"
        )

    @staticmethod
    def from_array(items: List[Any]) -> Table:
        if not items:
            raise NormalizationError("Response array is empty")

        if all(isinstance(item, list) for item in items):
            logger.debug("Response is already a table (%d rows)", len(items))
            table = [[_cell_text(cell) for cell in row] for row in items]
            if not table[0]:
                raise NormalizationError("Header row is empty")
            return table

        first = items[0]
        if isinstance(first, dict):
            headers = [str(key) for key in first.keys()]
            if not headers:
                raise NormalizationError("First record has no fields")
            logger.debug(
                "Converting %d records to a table with columns %s",
                len(items), headers,
            )
            rows = [headers]
            for item in items:
                record = item if isinstance(item, dict) else {}
                rows.append([_cell_text(record.get(h), trim=True) for h in headers])
            return rows

        raise NormalizationError(
            f"Unsupported array element type: {type(first).__name__}"
        )

    @classmethod
    def from_object(cls, payload: Dict[str, Any]) -> Table:
        selected = cls._direct_table_field(payload)

        if selected is _MISSING:
            selected = cls._table_like_field(payload)

        if selected is _MISSING:
            selected = cls._csv_field(payload)

        if selected is _MISSING:
            logger.debug("No table field found, flattening %d keys", len(payload))
            return cls.flatten_to_field_table(payload)

        if not isinstance(selected, list) or not selected:
            raise NormalizationError("Table field does not hold a non-empty array")
        return cls.from_array(selected)

    @staticmethod
    def _direct_table_field(payload: Dict[str, Any]) -> Any:
        for key in DIRECT_TABLE_FIELDS:
            value = payload.get(key)
            if value is not None:
                logger.debug("Using table field %r", key)
                return value
        return _MISSING

    @staticmethod
    def _table_like_field(payload: Dict[str, Any]) -> Any:
        for key in TABLE_LIKE_FIELDS:
            value = payload.get(key)
            if isinstance(value, list) and value:
                return value
        return _MISSING

    @staticmethod
    def _csv_field(payload: Dict[str, Any]) -> Any:
        for key in CSV_FIELDS:
            value = payload.get(key)
            if isinstance(value, str):
                logger.debug("Parsing CSV text from field %r", key)
                return parse_simple_csv(value)
        return _MISSING

    @staticmethod
    def flatten_to_field_table(payload: Dict[str, Any]) -> Table:
        fields: Dict[str, str] = {}
        _flatten(payload, "", fields)
        if not fields:
            raise NormalizationError("Response object has no fields")
        return [list(FIELD_VALUE_HEADER)] + [
            [humanize_field_name(name), value] for name, value in fields.items()
        ]


def parse_simple_csv(text: str) -> Table:
    """Split on newlines then commas. Quoted commas are not supported."""
    lines = text.split("\n")
    while lines and not lines[-1].strip():
        lines.pop()
    return [[cell.strip() for cell in line.split(",")] for line in lines]


def _flatten(obj: Dict[str, Any], prefix: str, out: Dict[str, str]) -> None:
    for key, value in obj.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if value is None:
            out[name] = ""
        elif isinstance(value, dict):
            _flatten(value, name, out)
        elif isinstance(value, list):
            out[name] = ", ".join(_cell_text(item) for item in value)
        else:
            out[name] = _scalar_text(value)


def normalize_response(body: Union[str, bytes]) -> Table:
    """Parse a raw webhook body into a table.

    Raises:
        NormalizationError: the body holds no usable table. Unexpected
            failures while interpreting the payload are reported the same way.
    """
    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode("utf-8", errors="replace")

    try:
        parsed = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise NormalizationError(f"Response is not valid JSON: {e}") from e

    try:
        return TableNormalizer.from_value(parsed)
    except NormalizationError:
        raise
    except Exception as e:
        logger.exception("Unexpected failure while normalizing webhook response")
        raise NormalizationError(f"Could not interpret response: {e}") from e
