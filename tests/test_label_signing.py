import base64

import cbor2
import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from divinebridge.label_signing import (
    UnsignedLabel,
    encode_label,
    sign_label,
    signing_key_from_hex,
)

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@pytest.fixture
def signing_key():
    return signing_key_from_hex(bytes([1] * 32).hex())


def _label(**overrides):
    fields = dict(
        ver=1,
        src="did:plc:test",
        uri="at://did:plc:u/app.bsky.feed.post/x",
        val="porn",
        neg=False,
        cts="2026-03-20T00:00:00Z",
    )
    fields.update(overrides)
    return UnsignedLabel(**fields)


def _verify(key, signature_b64, label):
    raw = base64.b64decode(signature_b64)
    r = int.from_bytes(raw[:32], "big")
    s = int.from_bytes(raw[32:], "big")
    key.public_key().verify(
        encode_dss_signature(r, s), encode_label(label), ec.ECDSA(hashes.SHA256())
    )
    return s


def test_sign_label_produces_base64_signature(signing_key):
    label = _label(
        src="did:plc:test-labeler",
        uri="at://did:plc:user1/app.bsky.feed.post/rkey1",
        val="nudity",
        cts="2026-03-20T12:00:00.000Z",
    )
    sig = sign_label(label, signing_key)
    assert sig
    assert len(base64.b64decode(sig, validate=True)) == 64


def test_same_label_produces_same_signature(signing_key):
    label = _label()
    sig1 = sign_label(label, signing_key)
    sig2 = sign_label(label, signing_key)
    assert len(base64.b64decode(sig1, validate=True)) == 64
    assert sig1 == sig2
    s = _verify(signing_key, sig1, label)
    assert 1 <= s <= SECP256K1_ORDER // 2


def test_different_labels_produce_different_signatures(signing_key):
    sig1 = sign_label(_label(val="nudity"), signing_key)
    sig2 = sign_label(_label(val="porn"), signing_key)
    assert sig1 != sig2


def test_signing_key_from_hex_works():
    key = signing_key_from_hex("ab" * 32)
    value = key.private_numbers().private_value
    assert value.to_bytes(32, "big") == bytes.fromhex("ab" * 32)


def test_signature_verifies_and_is_low_s(signing_key):
    label = _label()
    s = _verify(signing_key, sign_label(label, signing_key), label)
    assert 1 <= s <= SECP256K1_ORDER // 2


def test_signature_does_not_verify_other_label(signing_key):
    sig = sign_label(_label(val="nudity"), signing_key)
    with pytest.raises(InvalidSignature):
        _verify(signing_key, sig, _label(val="porn"))


def test_encode_label_sorts_keys_and_omits_missing_cid():
    encoded = encode_label(_label())
    assert encoded[:4] == b"\xa6\x63cts"
    decoded = cbor2.loads(encoded)
    assert list(decoded) == ["cts", "neg", "src", "uri", "val", "ver"]
    assert decoded == _label().to_dict()


def test_encode_label_includes_cid_when_set():
    decoded = cbor2.loads(encode_label(_label(cid="bafyexample")))
    assert list(decoded) == ["cid", "cts", "neg", "src", "uri", "val", "ver"]
    assert decoded["cid"] == "bafyexample"


def test_to_dict_field_order():
    assert list(_label(cid="bafy").to_dict()) == ["ver", "src", "uri", "cid", "val", "neg", "cts"]


@pytest.mark.parametrize("bad", ["zz" * 32, "ab" * 16, "a" * 63, "00" * 32])
def test_signing_key_from_hex_rejects_invalid(bad):
    with pytest.raises(ValueError):
        signing_key_from_hex(bad)


def test_sign_label_rejects_other_curve():
    other = ec.generate_private_key(ec.SECP256R1())
    with pytest.raises(ValueError, match="secp256k1"):
        sign_label(_label(), other)