"""
Canonical bytes for everything reconguard hashes or signs.

Sealed audit records, record hashes, ledger signatures and ledger chain
links all go through canonicalize(), which is RFC 8785 (JCS). Inputs must
already be JSON primitives: enums and decisions are converted by their
to_dict() methods before they get here.
"""

import hashlib

import jcs


def canonicalize(obj: dict) -> bytes:
    """RFC 8785 UTF-8 bytes of obj. Independent of key insertion order."""
    return jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of canonicalize(obj)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
