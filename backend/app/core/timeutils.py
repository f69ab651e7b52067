"""
Timestamp helpers shared by the recorder, the store and the aggregator.

Every timestamp written to ArangoDB goes through `to_iso` so that all stored
values share one fixed-width UTC format and compare correctly as strings in AQL.
"""
import datetime
from typing import Optional, Union

def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)

def parse_timestamp(value: Union[str, datetime.datetime]) -> datetime.datetime:
    """Accepts widget ISO strings (with or without 'Z') and naive datetimes, returns aware UTC."""
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)

def to_iso(value: Union[str, datetime.datetime]) -> str:
    return parse_timestamp(value).isoformat(timespec="milliseconds")

def seconds_between(start: Optional[datetime.datetime], end: Optional[datetime.datetime]) -> Optional[int]:
    """Whole seconds from start to end; None when either is missing or end precedes start."""
    if start is None or end is None:
        return None
    elapsed = (parse_timestamp(end) - parse_timestamp(start)).total_seconds()
    if elapsed < 0:
        return None
    return int(round(elapsed))

def format_duration(total_seconds: int) -> str:
    minutes, seconds = divmod(int(total_seconds), 60)
    return f"{minutes}m {seconds}s"
