from datetime import datetime, timezone

import pytest

from divinebridge.account_links import AccountLinkRecord, ProvisioningState

MOMENT = datetime(2026, 3, 20, 0, 0, 0, tzinfo=timezone.utc)


def _row(**overrides):
    row = {
        "nostr_pubkey": "npub-alice",
        "handle": "alice.divine.video",
        "did": "did:plc:alice",
        "crosspost_enabled": True,
        "provisioning_state": "ready",
        "provisioning_error": None,
        "disabled_at": None,
        "created_at": MOMENT,
        "updated_at": MOMENT,
    }
    row.update(overrides)
    return row


@pytest.mark.parametrize(
    "value, expected",
    [
        ("pending", ProvisioningState.PENDING),
        ("ready", ProvisioningState.READY),
        ("failed", ProvisioningState.FAILED),
        ("disabled", ProvisioningState.DISABLED),
    ],
)
def test_parse_known_states(value, expected):
    assert ProvisioningState.parse(value) is expected


def test_parse_unknown_state_is_failed():
    assert ProvisioningState.parse("mystery") is ProvisioningState.FAILED


def test_from_row_copies_fields():
    record = AccountLinkRecord.from_row(_row())
    assert record.nostr_pubkey == "npub-alice"
    assert record.handle == "alice.divine.video"
    assert record.did == "did:plc:alice"
    assert record.provisioning_state is ProvisioningState.READY
    assert record.created_at == MOMENT


def test_from_row_unknown_state_becomes_failed():
    record = AccountLinkRecord.from_row(_row(provisioning_state="weird"))
    assert record.provisioning_state is ProvisioningState.FAILED


def test_to_dict_serializes_state_and_timestamps():
    data = AccountLinkRecord.from_row(_row()).to_dict()
    assert data["provisioning_state"] == "ready"
    assert data["created_at"] == "2026-03-20T00:00:00Z"
    assert data["updated_at"] == data["created_at"]
    assert data["disabled_at"] is None
    assert data["provisioning_error"] is None


def test_to_dict_keeps_disabled_at():
    data = AccountLinkRecord.from_row(
        _row(provisioning_state="disabled", disabled_at=MOMENT)
    ).to_dict()
    assert data["provisioning_state"] == "disabled"
    assert data["disabled_at"] == data["created_at"]


def test_to_dict_has_all_fields():
    data = AccountLinkRecord.from_row(_row()).to_dict()
    assert set(data) == set(_row())