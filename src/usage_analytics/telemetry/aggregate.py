"""Aggregate store - folds individual events into the session record."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any

from ..errors import ValidationError
from .events import Number, SessionRecord


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid count or value; inf and
    # nan have no JSON representation
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def validate_event(
    event_type: Any,
    category: Any,
    subcategory: Any,
    count: Any,
    value: Any,
) -> None:
    """
    Check record() arguments.

    Raises:
        ValidationError: naming the first constraint that broke
    """
    for name, key in (("type", event_type), ("category", category), ("subcategory", subcategory)):
        if not isinstance(key, str) or not key:
            raise ValidationError(name, "must be a non-empty string")
    if not _is_number(count) or not count >= 0:
        raise ValidationError("count", f"must be a finite non-negative number, got {count!r}")
    if not _is_number(value):
        raise ValidationError("value", f"must be a finite number, got {value!r}")


class AggregateStore:
    """
    Merges events into per-tick counts and histograms.

    Stateless apart from the record it is handed: the session controller
    owns the live SessionRecord and the clock, and passes both in.
    """

    def record(
        self,
        record: SessionRecord,
        tick: Number,
        event_type: str,
        category: str,
        subcategory: str,
        count: Number = 1,
        value: Number = 0,
    ) -> None:
        """
        Fold one logical event into `record` at quantized time `tick`.

        Validation happens before any mutation, so a rejected call leaves
        the record untouched. total_event_count grows by one per call, not
        by `count`.
        """
        validate_event(event_type, category, subcategory, count, value)
        record.bucket(event_type, category, subcategory).add(tick, count, value)
        record.total_event_count += 1
