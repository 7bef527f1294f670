"""Session record and aggregate bucket types."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Union


SCHEMA_VERSION = 1

Number = Union[int, float]


@dataclass(slots=True)
class Scalar:
    """Plain occurrence count for valueless events in one tick."""
    count: Number

    def to_wire(self) -> Number:
        return self.count


@dataclass(slots=True)
class Histogram:
    """Occurrence count per associated value in one tick."""
    counts: dict[Number, Number] = field(default_factory=dict)

    def add(self, value: Number, count: Number) -> None:
        self.counts[value] = self.counts.get(value, 0) + count

    def to_wire(self) -> dict[str, Number]:
        return {_value_key(value): count for value, count in self.counts.items()}


BucketValue = Union[Scalar, Histogram]


def _value_key(value: Number) -> str:
    # 5.0 and 5 must serialize to the same key
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


@dataclass(slots=True)
class Bucket:
    """
    Aggregated occurrences of one (type, category, subcategory) triple.

    `times` and `values` are parallel: values[i] holds everything observed
    during quantized time times[i]. A new tick always appends; the same
    tick always merges into the last entry.
    """
    times: list[Number] = field(default_factory=list)
    values: list[BucketValue] = field(default_factory=list)

    def add(self, tick: Number, count: Number, value: Number) -> None:
        """Fold one occurrence observed at `tick` into the bucket."""
        if not self.times or self.times[-1] != tick:
            self.times.append(tick)
            if value == 0:
                self.values.append(Scalar(count))
            else:
                self.values.append(Histogram({value: count}))
            return

        last = self.values[-1]
        if isinstance(last, Scalar):
            if value == 0:
                last.count += count
            else:
                # Promotion is one-way: the plain count becomes the 0 bucket
                self.values[-1] = Histogram({0: last.count, value: count})
        else:
            last.add(value, count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": list(self.times),
            "valueCount": [v.to_wire() for v in self.values],
        }


@dataclass
class SessionRecord:
    """
    Envelope of identity plus aggregated events pending delivery.

    Owned by the session controller until detached for delivery; a
    detached record is owned by exactly one delivery task.
    """
    account_id: str
    app_name: str
    user_id: str
    session_id: str

    started_at_utc: int = field(default_factory=lambda: int(time.time() * 1000))
    total_event_count: int = 0
    events: dict[str, dict[str, dict[str, Bucket]]] = field(default_factory=dict)
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def create(cls, account_id: str, app_name: str, user_id: str, session_id: str) -> SessionRecord:
        """Fresh, empty record stamped with the current wall-clock time."""
        return cls(
            account_id=account_id,
            app_name=app_name,
            user_id=user_id,
            session_id=session_id,
        )

    def bucket(self, event_type: str, category: str, subcategory: str) -> Bucket:
        """Locate or create the bucket for a triple."""
        categories = self.events.setdefault(event_type, {})
        subcategories = categories.setdefault(category, {})
        bucket = subcategories.get(subcategory)
        if bucket is None:
            bucket = subcategories[subcategory] = Bucket()
        return bucket

    def get_bucket(self, event_type: str, category: str, subcategory: str) -> Bucket | None:
        """Look up a bucket without creating it."""
        return self.events.get(event_type, {}).get(category, {}).get(subcategory)

    @property
    def is_empty(self) -> bool:
        return self.total_event_count == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire format expected by the collector."""
        return {
            "schemaVersion": self.schema_version,
            "accountID": self.account_id,
            "appName": self.app_name,
            "uuid": self.user_id,
            "sessionID": self.session_id,
            "unixTimestampUTC": self.started_at_utc,
            "numEventsTotal": self.total_event_count,
            "events": {
                event_type: {
                    category: {
                        subcategory: bucket.to_dict()
                        for subcategory, bucket in subcategories.items()
                    }
                    for category, subcategories in categories.items()
                }
                for event_type, categories in self.events.items()
            },
        }
