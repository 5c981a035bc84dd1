"""Field Codec — reversible AES-GCM encryption of individual sensitive string fields.

Invariants:
    - decrypt(encrypt(s)) == s for every string s
    - Tokens are "<key-version>:<urlsafe-b64(nonce || ciphertext+tag)>"
    - Encryption always uses the active key version; decryption picks the key by prefix
    - Every decode failure surfaces as CodecError (never a raw cryptography exception)
    - The UNSET_FIELD sentinel never reaches encrypt/decrypt: seal_field/open_field
      short-circuit it before the codec is called

Design Decisions:
    - AESGCM from `cryptography`: authenticated, so a wrong key or a flipped byte is
      detected instead of decrypting to garbage
    - Random 96-bit nonce per value: equal names do not produce equal ciphertexts
    - Keyring keyed by version: old ciphertexts stay readable after rotation
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from registry.core.domain_types import UNSET_FIELD
from registry.core.errors import CodecError

NONCE_SIZE = 12
KEY_SIZE = 32
_TAG_SIZE = 16


class FieldCodec:
    """Encrypts and decrypts single string fields with a versioned keyring."""

    def __init__(self, keys: dict[str, bytes], active_version: str):
        if active_version not in keys:
            raise ValueError(f"Active key version '{active_version}' missing from keyring")
        for version, key in keys.items():
            if ":" in version:
                raise ValueError(f"Key version '{version}' must not contain ':'")
            if len(key) != KEY_SIZE:
                raise ValueError(f"Key '{version}' must be {KEY_SIZE} bytes")
        self._ciphers = {version: AESGCM(key) for version, key in keys.items()}
        self.active_version = active_version

    @classmethod
    def from_hex(cls, keys: dict[str, str], active_version: str) -> "FieldCodec":
        """Build from hex-encoded keys (the shape settings carry them in)."""
        try:
            decoded = {version: bytes.fromhex(key) for version, key in keys.items()}
        except ValueError as e:
            raise ValueError(f"Field encryption keys must be hex: {e}") from e
        return cls(decoded, active_version)

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._ciphers[self.active_version].encrypt(
            nonce, plaintext.encode("utf-8"), None,
        )
        payload = base64.urlsafe_b64encode(nonce + sealed).decode("ascii")
        return f"{self.active_version}:{payload}"

    def decrypt(self, ciphertext: str) -> str:
        version, sep, payload = ciphertext.partition(":")
        if not sep or not payload:
            raise CodecError("missing key version prefix")
        cipher = self._ciphers.get(version)
        if cipher is None:
            raise CodecError(f"unknown key version '{version}'")
        try:
            raw = base64.urlsafe_b64decode(payload.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError):
            raise CodecError("payload is not valid base64")
        if len(raw) < NONCE_SIZE + _TAG_SIZE:
            raise CodecError("payload truncated")
        try:
            plaintext = cipher.decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], None)
        except InvalidTag:
            raise CodecError("authentication tag mismatch")
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise CodecError("plaintext is not valid UTF-8")


# ─── Sentinel boundary ──────────────────────────────────────────

def seal_field(codec: FieldCodec, value: str | None) -> str:
    """Domain value → stored value. None is stored as the sentinel, unencrypted."""
    if value is None:
        return UNSET_FIELD
    return codec.encrypt(value)


def open_field(codec: FieldCodec, stored: str | None) -> str | None:
    """Stored value → domain value. The sentinel comes back as None, never decrypted."""
    if stored is None or stored == UNSET_FIELD:
        return None
    return codec.decrypt(stored)
