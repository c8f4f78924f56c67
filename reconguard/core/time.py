"""
Timestamps on audit records, evidence bundles and ledger entries.

Always UTC, always millisecond precision with a literal Z:
    2026-03-01T14:05:09.120Z
"""

import re
from datetime import datetime, timezone

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def audit_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return f"{now:%Y-%m-%dT%H:%M:%S}.{now.microsecond // 1000:03d}Z"
