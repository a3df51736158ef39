"""Shared data types exchanged between the Nostr and AT Protocol sides of the bridge."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


def _get(data: Mapping[str, Any], key: str, kind: type, *, optional: bool = False) -> Any:
    """Fetch ``key`` from ``data`` and check its type, raising ValueError on mismatch."""
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise ValueError(f"missing field {key!r}")
    if (kind is int and isinstance(value, bool)) or not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be of type {kind.__name__}")
    return value


def _get_uint(data: Mapping[str, Any], key: str, *, optional: bool = False) -> int | None:
    value = _get(data, key, int, optional=optional)
    if value is not None and value < 0:
        raise ValueError(f"field {key!r} must not be negative")
    return value


# ---------------------------------------------------------------------------
# Nostr types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NostrEvent:
    """A minimal Nostr event as seen by the bridge."""

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: list[list[str]]
    content: str
    sig: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NostrEvent:
        tags = _get(data, "tags", list)
        for tag in tags:
            if not isinstance(tag, list) or not all(isinstance(part, str) for part in tag):
                raise ValueError("field 'tags' must be a list of string lists")
        return cls(
            id=_get(data, "id", str),
            pubkey=_get(data, "pubkey", str),
            created_at=_get(data, "created_at", int),
            kind=_get_uint(data, "kind"),
            tags=[list(tag) for tag in tags],
            content=_get(data, "content", str),
            sig=_get(data, "sig", str),
        )


@dataclass
class VideoMeta:
    """NIP-71 video metadata extracted from event tags."""

    url: str
    title: str | None = None
    thumb: str | None = None
    summary: str | None = None
    duration: int | None = None
    mime: str | None = None
    sha256: str | None = None


# ---------------------------------------------------------------------------
# ATProto types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CidLink:
    """The ``{"$link": ...}`` wrapper used in blob references."""

    link: str


@dataclass(frozen=True)
class BlobRef:
    """Reference to a blob stored in a PDS, in the ATProto blob schema."""

    ref_link: CidLink
    mime_type: str
    size: int
    type_: str = "blob"

    def cid(self) -> str:
        return self.ref_link.link

    def to_dict(self) -> dict[str, Any]:
        return {
            "$type": self.type_,
            "ref": {"$link": self.ref_link.link},
            "mimeType": self.mime_type,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlobRef:
        ref = _get(data, "ref", dict)
        return cls(
            ref_link=CidLink(_get(ref, "$link", str)),
            mime_type=_get(data, "mimeType", str),
            size=_get_uint(data, "size"),
            type_=_get(data, "$type", str, optional=True) or "blob",
        )


@dataclass
class PdsRecord:
    """A record to be written to a PDS repository."""

    did: str
    collection: str
    rkey: str
    record: Any


# ---------------------------------------------------------------------------
# Bridge status / job types
# ---------------------------------------------------------------------------


class _StrEnum(str, enum.Enum):
    def __str__(self) -> str:
        return self.value


class PublishState(_StrEnum):
    """States a publish job can be in."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PUBLISHED = "published"
    FAILED = "failed"
    SKIPPED = "skipped"


class RecordStatus(_StrEnum):
    """States a record mapping can be in."""

    PUBLISHED = "published"
    DELETED = "deleted"
    TAKEN_DOWN = "taken_down"


class ModerationAction(_StrEnum):
    """Moderation action types."""

    TAKEDOWN = "takedown"
    FLAG = "flag"
    LABEL = "label"
    RESTORE = "restore"


class ModerationOrigin(_StrEnum):
    """Origin of a moderation action."""

    NOSTR = "nostr"
    ATPROTO = "atproto"
    MANUAL = "manual"


@dataclass
class IngestCheckpoint:
    """Checkpoint for relay ingestion progress; the timestamp is held in UTC."""

    source_name: str
    last_event_id: str
    last_created_at: datetime

    def __post_init__(self) -> None:
        if self.last_created_at.tzinfo is None:
            raise ValueError("last_created_at must be timezone-aware")
        self.last_created_at = self.last_created_at.astimezone(timezone.utc)