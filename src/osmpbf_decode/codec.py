from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import accumulate
from typing import Iterable

from osmpbf_core.errors import FormatError
from osmpbf_core.protocol import NANO

from .context import BlockContext

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def decode_lat(ctx: BlockContext, raw: int) -> float:
    return (ctx.granularity * raw + ctx.lat_offset) / NANO


def decode_lon(ctx: BlockContext, raw: int) -> float:
    return (ctx.granularity * raw + ctx.lon_offset) / NANO


def timestamp_millis(ctx: BlockContext, raw: int | None) -> int | None:
    if raw is None:
        return None
    return ctx.date_granularity * raw


def decode_timestamp(ctx: BlockContext, raw: int | None) -> datetime | None:
    """Raw timestamp units to a UTC datetime; None when absent."""
    millis = timestamp_millis(ctx, raw)
    if millis is None:
        return None
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError as e:
        raise FormatError("E_TIMESTAMP_RANGE", f"{millis} ms since epoch") from e


def nanodegrees(raw: int) -> float:
    return raw / NANO


def delta_decode(deltas: Iterable[int]) -> list[int]:
    """Running sum of ``deltas`` starting from zero."""
    return list(accumulate(deltas))
