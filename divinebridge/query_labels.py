"""The ``com.atproto.label.queryLabels`` query over stored labeler events."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, Sequence

DEFAULT_LIMIT = 50
MAX_LIMIT = 250

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class _EventSource(Protocol):
    def get_events_after(self, after_seq: int, limit: int) -> Sequence[LabelerEvent]: ...


@dataclass(frozen=True)
class LabelerEvent:
    """A label emitted by the labeler, as stored with its sequence number."""

    seq: int
    src_did: str
    subject_uri: str
    val: str
    neg: bool
    origin: str
    created_at: datetime
    subject_cid: str | None = None
    nostr_event_id: str | None = None
    sha256: str | None = None


def _rfc3339(moment: datetime) -> str:
    """Format as RFC 3339 in UTC with 0, 3 or 6 fraction digits and a ``+00:00`` offset."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    micro = moment.microsecond
    if micro:
        text += f".{micro // 1000:03d}" if micro % 1000 == 0 else f".{micro:06d}"
    return text + "+00:00"


def _label_output(event: LabelerEvent) -> dict[str, Any]:
    label: dict[str, Any] = {"ver": 1, "src": event.src_did, "uri": event.subject_uri}
    if event.subject_cid is not None:
        label["cid"] = event.subject_cid
    label.update(val=event.val, neg=event.neg, cts=_rfc3339(event.created_at))
    return label


def _response(events: Sequence[LabelerEvent]) -> dict[str, Any]:
    result: dict[str, Any] = {"labels": [_label_output(event) for event in events]}
    if events:
        result["cursor"] = str(events[-1].seq)
    return result


def build_query_response(events: Sequence[LabelerEvent]) -> tuple[str, str | None]:
    """Return the JSON body for ``events`` and the cursor (the last sequence number)."""
    response = _response(events)
    body = json.dumps(response, separators=(",", ":"), ensure_ascii=False)
    return body, response.get("cursor")


def matches_uri_patterns(uri: str, patterns: Sequence[str]) -> bool:
    """True when ``patterns`` is empty or any pattern matches ``uri``.

    A pattern ending in ``*`` matches by prefix; any other pattern must match exactly.
    """
    if not patterns:
        return True
    return any(
        uri.startswith(pattern[:-1]) if pattern.endswith("*") else uri == pattern
        for pattern in patterns
    )


def _parse_cursor(cursor: str | None) -> int:
    if cursor is None or not _INT_PATTERN.fullmatch(cursor):
        return 0
    value = int(cursor)
    return value if _I64_MIN <= value <= _I64_MAX else 0


def query_labels(
    store: _EventSource,
    uri_patterns: str | None = None,
    limit: int | None = None,
    cursor: str | None = None,
) -> dict[str, Any]:
    """Query labels after ``cursor``, filtered by comma-separated ``uri_patterns``.

    ``limit`` defaults to 50 and is capped at 250; an unparsable cursor starts from 0.
    """
    effective_limit = min(DEFAULT_LIMIT if limit is None else limit, MAX_LIMIT)
    events = store.get_events_after(_parse_cursor(cursor), effective_limit)
    patterns = (
        [pattern.strip() for pattern in uri_patterns.split(",")]
        if uri_patterns is not None
        else []
    )
    filtered = [event for event in events if matches_uri_patterns(event.subject_uri, patterns)]
    return _response(filtered)