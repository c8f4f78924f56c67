"""
reconguard/ledger/ledger.py

Append-only, hash-chained, signed store for sealed audit records.

Contract: append() MUST, in this exact order:
  1. Refuse unsealed records          (LedgerError)
  2. Acquire lock
  3. Build the entry with causal_hash = SHA-256(JCS(prev.to_chain_dict()))
  4. Sign JCS(entry.to_signing_dict())
  5. Append one JSON line to disk
  6. Advance sequence / last entry, only after the write succeeded

The first entry's causal_hash is GENESIS_HASH. Each entry also carries the
record's own hash, so a record edited on disk fails verification even if
someone re-signs the envelope with a different key.
"""

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from reconguard.core.audit import AuditRecord
from reconguard.core.canonical import canonical_hash, canonicalize
from reconguard.core.crypto import AuditSigner, Ed25519KeyManager
from reconguard.core.exceptions import LedgerError
from reconguard.core.time import audit_timestamp

logger = logging.getLogger("reconguard")

GENESIS_HASH = "0" * 64
LEDGER_FILENAME = "ledger.jsonl"


@dataclass
class LedgerEntry:
    """A single signed entry wrapping one sealed audit record."""
    sequence:          int
    record_id:         str
    record_hash:       str
    causal_hash:       str
    timestamp:         str
    record:            Dict[str, Any]
    signer_public_key: str
    signature:         Optional[str] = None

    def to_signing_dict(self) -> Dict[str, Any]:
        """The exact dict that is signed. Everything except the signature."""
        return {
            "causal_hash":       self.causal_hash,
            "record":            self.record,
            "record_hash":       self.record_hash,
            "record_id":         self.record_id,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_chain_dict(self) -> Dict[str, Any]:
        """The exact dict hashed into the NEXT entry's causal_hash."""
        return self.to_signing_dict()

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict()
        d["signature"] = self.signature
        return d

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LedgerEntry":
        return LedgerEntry(
            sequence=          data["sequence"],
            record_id=         data["record_id"],
            record_hash=       data["record_hash"],
            causal_hash=       data["causal_hash"],
            timestamp=         data["timestamp"],
            record=            data["record"],
            signer_public_key= data["signer_public_key"],
            signature=         data.get("signature"),
        )

    @staticmethod
    def chain_hash_of(prev: Optional["LedgerEntry"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_chain_dict())

    def verify_chain(self, prev: Optional["LedgerEntry"]) -> bool:
        return self.causal_hash == LedgerEntry.chain_hash_of(prev)

    def verify_record_hash(self) -> bool:
        return self.record_hash == canonical_hash(self.record)

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return Ed25519KeyManager.verify_detached(
            canonicalize(self.to_signing_dict()),
            self.signature,
            self.signer_public_key,
        )

    def audit_record(self) -> AuditRecord:
        return AuditRecord.from_dict(self.record)


@dataclass
class VerificationReport:
    """Outcome of AuditLedger.verify()."""
    total_entries: int
    violations:    List[str]

    @property
    def valid(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid":         self.valid,
            "total_entries": self.total_entries,
            "violations":    list(self.violations),
        }


class AuditLedger:
    """
    Signed append-only ledger of sealed audit records.

    Thread-safe via internal lock (single process). State survives
    restart by reading the last line of the ledger file.
    """

    def __init__(
        self,
        signer:      AuditSigner,
        ledger_path: str = ".reconguard/ledger",
    ) -> None:
        self.signer = signer

        self._lock:       threading.Lock        = threading.Lock()
        self._sequence:   int                   = 0
        self._last_entry: Optional[LedgerEntry] = None

        self._ledger_dir  = Path(ledger_path)
        self._ledger_dir.mkdir(parents=True, exist_ok=True)
        self._ledger_file = self._ledger_dir / LEDGER_FILENAME

        self._restore_state()

    @property
    def ledger_file(self) -> Path:
        return self._ledger_file

    # ── Public API ────────────────────────────────────────────

    def append(self, record: AuditRecord) -> LedgerEntry:
        """Sign and append one sealed record. Returns the written entry."""
        if not record.sealed:
            raise LedgerError(
                "Only sealed audit records can be appended",
                {"record_id": record.record_id},
            )

        record_dict = record.to_dict()
        with self._lock:
            entry = LedgerEntry(
                sequence=          self._sequence,
                record_id=         record.record_id,
                record_hash=       canonical_hash(record_dict),
                causal_hash=       LedgerEntry.chain_hash_of(self._last_entry),
                timestamp=         audit_timestamp(),
                record=            record_dict,
                signer_public_key= self.signer.public_key_hex,
            )
            entry.signature = self.signer.sign(canonicalize(entry.to_signing_dict()))

            self._write(entry)

            self._sequence  += 1
            self._last_entry = entry

        logger.debug("Ledger entry %d written for %s", entry.sequence, entry.record_id)
        return entry

    def entries(self) -> List[LedgerEntry]:
        """Read every entry from disk. Raises LedgerError on malformed lines."""
        if not self._ledger_file.exists():
            return []
        return read_entries(self._ledger_file)

    def verify(self) -> VerificationReport:
        return verify_entries(self.entries())

    def verify_chain(self) -> bool:
        return self.verify().valid

    def get_stats(self) -> Dict[str, Any]:
        return {
            "next_sequence":    self._sequence,
            "last_record_id":   self._last_entry.record_id if self._last_entry else None,
            "last_causal_hash": (
                self._last_entry.causal_hash if self._last_entry else GENESIS_HASH
            ),
            "ledger_file":      str(self._ledger_file),
            "signer":           self.signer.public_key_hex,
        }

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        if not self._ledger_file.exists():
            return
        entries = self.entries()
        if entries:
            self._last_entry = entries[-1]
            self._sequence   = entries[-1].sequence + 1

    def _write(self, entry: LedgerEntry) -> None:
        try:
            with open(self._ledger_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
        except OSError as exc:
            raise LedgerError(
                f"Ledger write failed: {exc}",
                {"ledger_file": str(self._ledger_file)},
            ) from exc


def read_entries(path: Path) -> List[LedgerEntry]:
    """Parse a ledger JSONL file into entries."""
    entries: List[LedgerEntry] = []
    with open(path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(LedgerEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError) as exc:
                raise LedgerError(
                    f"Malformed ledger entry at line {line_num}: {exc}",
                    {"ledger_file": str(path)},
                ) from exc
    return entries


def verify_entries(entries: List[LedgerEntry]) -> VerificationReport:
    """
    Check sequence, chain linkage, record hash and signature of every entry.
    Collects every violation instead of stopping at the first.
    """
    violations: List[str] = []
    prev: Optional[LedgerEntry] = None
    for i, entry in enumerate(entries):
        if entry.sequence != i:
            violations.append(f"entry {i}: sequence gap (got {entry.sequence})")
        if not entry.verify_chain(prev):
            violations.append(f"entry {i}: chain break (causal_hash mismatch)")
        if not entry.verify_record_hash():
            violations.append(f"entry {i}: record hash mismatch")
        if not entry.verify_signature():
            violations.append(f"entry {i}: invalid signature")
        prev = entry
    return VerificationReport(total_entries=len(entries), violations=violations)
