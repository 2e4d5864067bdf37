"""Normalization of the ``fens`` (position snapshots) field of a game.

Positions are persisted as JSON text holding an array. Clients send them in
several shapes, so every insert path funnels through :func:`normalize_positions`:

- ``None`` becomes ``"[]"``;
- a string holding a JSON array or object is stored as-is;
- a string holding a JSON scalar is wrapped, e.g. ``'42'`` -> ``'[42]'``,
  and ``'null'`` becomes ``"[]"``;
- a string that is not JSON at all is wrapped as a one-element array;
- lists and dicts are encoded directly;
- bare scalars (numbers, booleans) are wrapped.

Values that cannot be encoded as strict JSON raise :class:`InvalidGameRecord`.
"""

import json
from typing import Any

from hackerchess.core.errors import InvalidGameRecord

EMPTY_POSITIONS = "[]"


def _dumps(value: Any) -> str:
    try:
        return json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise InvalidGameRecord(detail=f"positions are not encodable: {exc}") from exc


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are not JSON
    raise ValueError(name)


def normalize_positions(value: Any) -> str:
    if value is None:
        return EMPTY_POSITIONS

    if isinstance(value, str):
        try:
            parsed = json.loads(value, parse_constant=_reject_constant)
        except ValueError:
            return _dumps([value])
        if isinstance(parsed, (list, dict)):
            return value
        if parsed is None:
            return EMPTY_POSITIONS
        try:
            return json.dumps([parsed], allow_nan=False)
        except ValueError:
            # e.g. "1e999" overflows to inf
            return _dumps([value])

    if isinstance(value, (list, tuple, dict)):
        return _dumps(list(value) if isinstance(value, tuple) else value)

    if isinstance(value, (bool, int, float)):
        return _dumps([value])

    raise InvalidGameRecord(
        detail=f"unsupported positions type: {type(value).__name__}"
    )


def decode_positions(text: str | None) -> Any:
    """Read side of :func:`normalize_positions`; never fails on legacy rows."""
    if not text:
        return []
    try:
        return json.loads(text)
    except ValueError:
        return [text]
