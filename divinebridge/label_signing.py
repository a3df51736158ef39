"""Signing of ATProto labels: DAG-CBOR encoding and deterministic ECDSA over secp256k1."""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import Any

import cbor2
from cryptography.hazmat.primitives.asymmetric import ec

_P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_HEX_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})*")

_Point = tuple[int, int] | None


@dataclass(frozen=True)
class UnsignedLabel:
    """The label fields covered by the signature (everything but ``sig``)."""

    ver: int
    src: str
    uri: str
    val: str
    neg: bool
    cts: str
    cid: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ver": self.ver, "src": self.src, "uri": self.uri}
        if self.cid is not None:
            result["cid"] = self.cid
        result.update(val=self.val, neg=self.neg, cts=self.cts)
        return result


def encode_label(label: UnsignedLabel) -> bytes:
    """Encode ``label`` as DAG-CBOR: map keys sorted by length, then bytewise."""
    fields = label.to_dict()
    ordered = dict(sorted(fields.items(), key=lambda item: (len(item[0].encode()), item[0].encode())))
    return cbor2.dumps(ordered, canonical=True)


def _point_add(a: _Point, b: _Point) -> _Point:
    if a is None:
        return b
    if b is None:
        return a
    (x1, y1), (x2, y2) = a, b
    if x1 == x2:
        if (y1 + y2) % _P == 0:
            return None
        slope = 3 * x1 * x1 * pow(2 * y1, -1, _P) % _P
    else:
        slope = (y2 - y1) * pow(x2 - x1, -1, _P) % _P
    x3 = (slope * slope - x1 - x2) % _P
    return x3, (slope * (x1 - x3) - y1) % _P


def _scalar_mult(k: int, point: _Point) -> _Point:
    result: _Point = None
    addend = point
    while k:
        if k & 1:
            result = _point_add(result, addend)
        addend = _point_add(addend, addend)
        k >>= 1
    return result


def _sign_digest(private_value: int, digest: bytes) -> bytes:
    """RFC 6979 deterministic ECDSA with HMAC-SHA256, low-S normalised, as r || s."""
    z = int.from_bytes(digest, "big") % _N
    x = private_value.to_bytes(32, "big")
    h = z.to_bytes(32, "big")

    def mac(key: bytes, data: bytes) -> bytes:
        return hmac.new(key, data, hashlib.sha256).digest()

    v = b"\x01" * 32
    k_mac = b"\x00" * 32
    k_mac = mac(k_mac, v + b"\x00" + x + h)
    v = mac(k_mac, v)
    k_mac = mac(k_mac, v + b"\x01" + x + h)
    v = mac(k_mac, v)

    while True:
        v = mac(k_mac, v)
        k = int.from_bytes(v, "big")
        if 1 <= k < _N:
            point = _scalar_mult(k, _G)
            if point is not None:
                r = point[0] % _N
                if r:
                    s = pow(k, -1, _N) * (z + r * private_value) % _N
                    if s:
                        if s > _N // 2:
                            s = _N - s
                        return r.to_bytes(32, "big") + s.to_bytes(32, "big")
        k_mac = mac(k_mac, v + b"\x00")
        v = mac(k_mac, v)


def sign_label(label: UnsignedLabel, key: ec.EllipticCurvePrivateKey) -> str:
    """Sign the DAG-CBOR encoding of ``label`` and return the base64 64-byte signature."""
    if not isinstance(key.curve, ec.SECP256K1):
        raise ValueError("signing key must be on the secp256k1 curve")
    digest = hashlib.sha256(encode_label(label)).digest()
    signature = _sign_digest(key.private_numbers().private_value, digest)
    return base64.b64encode(signature).decode("ascii")


def signing_key_from_hex(hex_key: str) -> ec.EllipticCurvePrivateKey:
    """Parse a hex-encoded secp256k1 private key."""
    if not _HEX_PATTERN.fullmatch(hex_key):
        raise ValueError("invalid hex in signing key")
    key_bytes = bytes.fromhex(hex_key)
    if len(key_bytes) != 32:
        raise ValueError("invalid secp256k1 private key: expected 32 bytes")
    private_value = int.from_bytes(key_bytes, "big")
    if not 1 <= private_value < _N:
        raise ValueError("invalid secp256k1 private key: scalar out of range")
    return ec.derive_private_key(private_value, ec.SECP256K1())