"""Mapping of persistence types to JSON-friendly values."""

import datetime
from decimal import Decimal
from typing import Any


def to_wire(value: Any) -> Any:
    """
    Convert Decimal and date values (recursively) into wire types.

    Decimals become floats and dates/datetimes become ISO-8601 strings.
    Mappings, lists and tuples are walked; anything else is returned as is.
    """
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return value
