"""Coercion of loosely-typed field values into canonical typed values.

Used at both source boundaries: flat-file cells arrive as strings, warehouse
cells arrive as driver-native objects (datetime, Decimal, bytes). Every method
returns a value or a defined default and never raises; problems are recorded
as ``ParseError`` entries and logged.
"""

import json
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from asset_catalog.errors import ParseError
from asset_catalog.logging_config import get_logger

logger = get_logger(__name__)

TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1"})
FALSE_VALUES = frozenset({"false", "f", "no", "n", "0", ""})

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_INTEGRAL_RE = re.compile(r"^[+-]?\d+\.0*$")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class FieldCoercer:
    """
    Converts raw values for one table (or one warehouse result set).

    Args:
        source: Name used in recorded issues, e.g. ``"assets"`` or ``"snowflake"``
        issues: Shared list that recorded ``ParseError`` entries are appended to
    """

    def __init__(self, source: str, issues: Optional[list] = None):
        self.source = source
        self.issues: list = issues if issues is not None else []
        self.row: Optional[int] = None

    def at_row(self, row: Optional[int]) -> "FieldCoercer":
        """Set the row number used in issue locations."""
        self.row = row
        return self

    def record(self, field: str, message: str, value: Any) -> None:
        location = f"{self.source}:{self.row}:{field}" if self.row is not None else f"{self.source}:{field}"
        issue = ParseError(
            message,
            detail=repr(value)[:200],
            location=location,
            context={"table": self.source, "row": self.row, "field": field},
        )
        self.issues.append(issue)
        logger.warning("Coerced malformed field", location=location, reason=message)

    # Scalars

    def text(self, value: Any) -> Optional[str]:
        """Stripped string, or None for blank values."""
        if _is_blank(value):
            return None
        return str(value).strip()

    def key(self, value: Any) -> Optional[str]:
        """
        Normalize a surrogate key so string and integer encodings join.

        ``"7"``, ``" 7 "``, ``7`` and ``"7.0"`` all become ``"7"``; other
        values are kept as stripped strings.
        """
        if _is_blank(value):
            return None
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, int):
            return str(value)
        text = str(value).strip()
        if _INTEGER_RE.match(text):
            return str(int(text))
        if _FLOAT_INTEGRAL_RE.match(text):
            return str(int(float(text)))
        return text

    def boolean(self, value: Any, field: str, default: bool = False) -> bool:
        """Coerce to bool. Unrecognized values yield ``default``."""
        if isinstance(value, bool):
            return value
        if value is None:
            return default
        if isinstance(value, (int, float, Decimal)):
            return value != 0
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False if text else default
        self.record(field, f"Unrecognized boolean value, using {default}", value)
        return default

    def integer(self, value: Any, field: str, default: Optional[int] = None) -> Optional[int]:
        """Coerce to int. Blank values and garbage yield ``default``."""
        if _is_blank(value):
            return default
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, (float, Decimal)):
            try:
                if value == int(value):
                    return int(value)
            except (ValueError, OverflowError, InvalidOperation):
                pass
            self.record(field, "Non-integral numeric value", value)
            return default
        text = str(value).strip().replace(",", "")
        if _INTEGER_RE.match(text):
            return int(text)
        if _FLOAT_INTEGRAL_RE.match(text):
            return int(float(text))
        self.record(field, "Unparseable integer", value)
        return default

    def iso_datetime(self, value: Any, field: str) -> Optional[str]:
        """Coerce a date/time value or string to an ISO-8601 string."""
        if _is_blank(value):
            return None
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
            except (OverflowError, OSError, ValueError):
                self.record(field, "Timestamp out of range", value)
                return None

        text = str(value).strip()
        candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        try:
            if _DATE_ONLY_RE.match(candidate):
                return date.fromisoformat(candidate).isoformat()
            return datetime.fromisoformat(candidate).isoformat()
        except ValueError:
            self.record(field, "Unparseable date/time", value)
            return None

    # Embedded JSON

    def json_rows(self, value: Any, field: str) -> Optional[list[dict[str, Any]]]:
        """
        Parse an embedded JSON blob holding a list of row objects.

        A single object is wrapped in a list. Malformed JSON or any other
        shape yields None for the field.
        """
        if _is_blank(value):
            return None
        if isinstance(value, list):
            parsed: Any = value
        else:
            try:
                parsed = json.loads(str(value))
            except (TypeError, ValueError) as e:
                self.record(field, f"Malformed JSON: {e}", value)
                return None

        if isinstance(parsed, dict):
            parsed = [parsed]
        if not isinstance(parsed, list) or not all(isinstance(r, dict) for r in parsed):
            self.record(field, "JSON value is not a list of objects", value)
            return None
        return [self.json_row(r) for r in parsed]

    # Warehouse values

    def json_safe(self, value: Any) -> Any:
        """Convert a driver-native value into something JSON can encode."""
        if value is None or isinstance(value, (bool, int, str)):
            return value
        if isinstance(value, float):
            return value if value == value and value not in (float("inf"), float("-inf")) else None
        if isinstance(value, Decimal):
            if value.is_nan() or value.is_infinite():
                return None
            return int(value) if value == value.to_integral_value() else float(value)
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value).hex()
        if isinstance(value, dict):
            return {str(k): self.json_safe(v) for k, v in value.items()}
        if isinstance(value, (list, tuple, set)):
            return [self.json_safe(v) for v in value]
        return str(value)

    def json_row(self, row: dict[str, Any]) -> dict[str, Any]:
        """Apply ``json_safe`` to every cell of a row, keeping key order."""
        return {str(k): self.json_safe(v) for k, v in row.items()}
