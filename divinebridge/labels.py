"""Label records and subscription messages of the ``com.atproto.label`` lexicon."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Union


def _get(data: Mapping[str, Any], key: str, kind: type, *, optional: bool = False) -> Any:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise ValueError(f"missing field {key!r}")
    if (kind is int and isinstance(value, bool)) or not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be of type {kind.__name__}")
    return value


@dataclass
class AtprotoLabel:
    """An ATProto label record (``com.atproto.label#label``)."""

    src: str
    uri: str
    val: str
    neg: bool
    cts: str
    ver: int | None = None
    cid: str | None = None
    exp: str | None = None
    sig: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize in lexicon field order, leaving out unset optional fields."""
        items: list[tuple[str, Any]] = [
            ("ver", self.ver),
            ("src", self.src),
            ("uri", self.uri),
            ("cid", self.cid),
            ("val", self.val),
            ("neg", self.neg),
            ("cts", self.cts),
            ("exp", self.exp),
            ("sig", self.sig),
        ]
        optional = {"ver", "cid", "exp", "sig"}
        return {k: v for k, v in items if not (k in optional and v is None)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AtprotoLabel:
        ver = _get(data, "ver", int, optional=True)
        if ver is not None and not 0 <= ver <= 0xFFFFFFFF:
            raise ValueError("field 'ver' out of range")
        return cls(
            src=_get(data, "src", str),
            uri=_get(data, "uri", str),
            val=_get(data, "val", str),
            neg=_get(data, "neg", bool),
            cts=_get(data, "cts", str),
            ver=ver,
            cid=_get(data, "cid", str, optional=True),
            exp=_get(data, "exp", str, optional=True),
            sig=_get(data, "sig", str, optional=True),
        )

    def is_system_label(self) -> bool:
        """True for administrative labels, whose value starts with ``!``."""
        return self.val.startswith("!")

    def targets_post(self) -> bool:
        return "/app.bsky.feed.post/" in self.uri

    def targets_account(self) -> bool:
        """True when the subject is a bare DID with no path."""
        return self.uri.startswith("did:") and "/" not in self.uri

    def subject_did(self) -> str | None:
        """The DID of the subject: the authority of an AT URI, or a bare DID."""
        if self.uri.startswith("at://"):
            authority = self.uri[len("at://"):].split("/", 1)[0]
            if authority.startswith("did:"):
                return authority
        elif self.uri.startswith("did:"):
            return self.uri
        return None


@dataclass
class LabelsMessage:
    """A batch of labels at a sequence number."""

    seq: int
    labels: list[AtprotoLabel] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"seq": self.seq, "labels": [label.to_dict() for label in self.labels]}


@dataclass
class InfoMessage:
    """An informational or control message from a labeler."""

    name: str
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.message is not None:
            result["message"] = self.message
        return result


SubscribeLabelsMessage = Union[LabelsMessage, InfoMessage]


def _parse_labels(data: Mapping[str, Any]) -> LabelsMessage:
    seq = _get(data, "seq", int)
    raw_labels = _get(data, "labels", list)
    labels = []
    for raw in raw_labels:
        if not isinstance(raw, Mapping):
            raise ValueError("each label must be an object")
        labels.append(AtprotoLabel.from_dict(raw))
    return LabelsMessage(seq=seq, labels=labels)


def _parse_info(data: Mapping[str, Any]) -> InfoMessage:
    return InfoMessage(
        name=_get(data, "name", str),
        message=_get(data, "message", str, optional=True),
    )


def parse_subscribe_labels_message(
    data: Mapping[str, Any] | str | bytes,
) -> SubscribeLabelsMessage:
    """Parse a subscribeLabels message, trying the labels form before the info form."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ValueError("subscribeLabels message must be an object")
    errors = []
    for parser in (_parse_labels, _parse_info):
        try:
            return parser(data)
        except ValueError as exc:
            errors.append(str(exc))
    raise ValueError(
        "data did not match any subscribeLabels message variant: " + "; ".join(errors)
    )