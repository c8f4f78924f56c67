"""
reconguard/core/crypto.py

Signers for sealed audit records.

The engine itself never signs. Whoever persists records (AuditLedger, the
CLI) hands canonical bytes to an AuditSigner. Ed25519KeyManager is the
signer shipped with reconguard:

    signature encoding   base64url, '=' padding stripped
    public key           32 raw bytes as 64 lowercase hex chars
    verification         verify_detached() needs only the hex key, so a
                         ledger can be checked without any private key
"""

import base64
import binascii
from pathlib import Path
from typing import Protocol, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

SIGNATURE_BYTES = 64
PUBLIC_KEY_HEX_LEN = 64


class AuditSigner(Protocol):
    """Anything that can sign canonical audit bytes."""

    @property
    def public_key_hex(self) -> str: ...

    def sign(self, data: bytes) -> str: ...


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class Ed25519KeyManager:
    """Ed25519 audit signer backed by the cryptography package."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519KeyManager":
        """Build from a raw 32-byte seed. ValueError for any other length."""
        if len(seed) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Ed25519KeyManager":
        """
        Load an unencrypted PKCS8 PEM key written by save().

        FileNotFoundError if missing, ValueError if it is not an Ed25519 key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Signing key not found: {path}")
        try:
            key = load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Unreadable signing key {path}: {exc}") from exc
        if not isinstance(key, Ed25519PrivateKey):
            raise ValueError(f"{path} holds a {type(key).__name__}, not an Ed25519 key")
        return cls(key)

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(
            self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
        )

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign(self, data: bytes) -> str:
        """Sign already-canonical bytes."""
        return _b64url_encode(self._private_key.sign(data))

    def verify(self, data: bytes, signature: str) -> bool:
        return Ed25519KeyManager.verify_detached(data, signature, self._public_key_hex)

    @staticmethod
    def verify_detached(data: bytes, signature: str, public_key_hex: str) -> bool:
        """
        True iff signature is a valid Ed25519 signature of data under
        public_key_hex. Malformed keys or signatures give False, never an
        exception.
        """
        if not isinstance(public_key_hex, str) or len(public_key_hex) != PUBLIC_KEY_HEX_LEN:
            return False
        if not isinstance(signature, str) or not signature:
            return False
        try:
            public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            raw = _b64url_decode(signature)
        except (ValueError, binascii.Error):
            return False
        if len(raw) != SIGNATURE_BYTES:
            return False
        try:
            public_key.verify(raw, data)
        except InvalidSignature:
            return False
        return True

    def __repr__(self) -> str:
        return f"Ed25519KeyManager({self._public_key_hex[:16]}...)"
