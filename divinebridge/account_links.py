"""Account link records kept by the handle gateway."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


class ProvisioningState(str, enum.Enum):
    """Where an account link is in the provisioning lifecycle."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    DISABLED = "disabled"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> ProvisioningState:
        """Map a stored state string to a state; anything unknown counts as failed."""
        try:
            return cls(value)
        except ValueError:
            return cls.FAILED


def _format_timestamp(moment: datetime) -> str:
    """RFC 3339 in UTC with a ``Z`` suffix and 0, 3 or 6 fraction digits."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    micro = moment.microsecond
    if micro:
        text += f".{micro // 1000:03d}" if micro % 1000 == 0 else f".{micro:06d}"
    return text + "Z"


@dataclass(frozen=True)
class AccountLinkRecord:
    """The link between a Nostr public key and its ATProto handle and DID."""

    nostr_pubkey: str
    handle: str
    did: str | None
    crosspost_enabled: bool
    provisioning_state: ProvisioningState
    provisioning_error: str | None
    disabled_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "nostr_pubkey": self.nostr_pubkey,
            "handle": self.handle,
            "did": self.did,
            "crosspost_enabled": self.crosspost_enabled,
            "provisioning_state": self.provisioning_state.value,
            "provisioning_error": self.provisioning_error,
            "disabled_at": (
                _format_timestamp(self.disabled_at) if self.disabled_at is not None else None
            ),
            "created_at": _format_timestamp(self.created_at),
            "updated_at": _format_timestamp(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> AccountLinkRecord:
        """Build a record from a stored account-link lifecycle row."""
        return cls(
            nostr_pubkey=row["nostr_pubkey"],
            handle=row["handle"],
            did=row.get("did"),
            crosspost_enabled=bool(row["crosspost_enabled"]),
            provisioning_state=ProvisioningState.parse(row["provisioning_state"]),
            provisioning_error=row.get("provisioning_error"),
            disabled_at=row.get("disabled_at"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )