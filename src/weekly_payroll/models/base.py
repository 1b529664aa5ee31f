"""Base record class and column codecs for the tabular store."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, ClassVar, TypeVar

from weekly_payroll.calculators.money import round_cents, to_decimal, to_whole


@dataclass(frozen=True)
class Codec:
    """Converts one attribute to and from its stored text form."""

    encode: Callable[[Any], str]
    decode: Callable[[str], Any]


def _encode_date(value: date | None) -> str:
    return value.isoformat() if value else ""


def _decode_date(text: str) -> date | None:
    text = text.strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def _encode_datetime(value: datetime | None) -> str:
    return value.isoformat(timespec="seconds") if value else ""


def _decode_datetime(text: str) -> datetime | None:
    text = text.strip()
    if not text:
        return None
    return datetime.fromisoformat(text)


def _decode_optional_int(text: str) -> int | None:
    text = text.strip()
    return to_whole(text) if text else None


def _decode_json(text: str) -> Any:
    text = text.strip()
    return json.loads(text) if text else None


TEXT = Codec(lambda v: "" if v is None else str(v), lambda t: t)
OPT_TEXT = Codec(lambda v: "" if v is None else str(v), lambda t: t or None)
INT = Codec(lambda v: str(int(v or 0)), to_whole)
OPT_INT = Codec(lambda v: "" if v is None else str(int(v)), _decode_optional_int)
MONEY = Codec(lambda v: str(round_cents(to_decimal(v))), lambda t: round_cents(to_decimal(t)))
DATE = Codec(_encode_date, _decode_date)
DATETIME = Codec(_encode_datetime, _decode_datetime)
BOOL = Codec(
    lambda v: "TRUE" if v else "FALSE",
    lambda t: t.strip().upper() in ("TRUE", "YES", "1"),
)
JSON_LIST = Codec(
    lambda v: json.dumps(list(v or []), default=str),
    lambda t: _decode_json(t) or [],
)
JSON_DICT = Codec(
    lambda v: json.dumps(v or {}, sort_keys=True, default=str),
    lambda t: _decode_json(t) or {},
)


def enum_codec(enum_cls: Any, default: Any = None) -> Codec:
    """Codec for ``str`` enums with a ``parse`` classmethod or plain values."""
    parse = getattr(enum_cls, "parse", enum_cls)

    def decode(text: str) -> Any:
        text = text.strip()
        return parse(text) if text else default

    return Codec(lambda v: v.value if v is not None else "", decode)


R = TypeVar("R", bound="RowRecord")


class RowRecord:
    """Dataclass mixin mapping attributes to store column headers.

    Subclasses declare ``TABLE`` and ``COLUMNS`` as
    ``(attribute, header, codec)`` triples.
    """

    TABLE: ClassVar[str]
    COLUMNS: ClassVar[tuple[tuple[str, str, Codec], ...]]

    @classmethod
    def headers(cls) -> list[str]:
        return [header for _, header, _ in cls.COLUMNS]

    def to_row(self) -> dict[str, str]:
        return {
            header: codec.encode(getattr(self, attr))
            for attr, header, codec in self.COLUMNS
        }

    @classmethod
    def from_row(cls: type[R], row: dict[str, str]) -> R:
        values = {
            attr: codec.decode(row.get(header, "") or "")
            for attr, header, codec in cls.COLUMNS
        }
        return cls(**values)  # type: ignore[call-arg]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view keyed by attribute name."""
        return {attr: jsonable(getattr(self, attr)) for attr, _, _ in self.COLUMNS}


def jsonable(value: Any) -> Any:
    """Convert Decimals, dates and enums to JSON-safe values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value
