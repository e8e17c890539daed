"""Payment webhook signature verification.

The provider signs ``id:{data.id};request-id:{x-request-id};ts:{ts};`` with
HMAC-SHA256 and sends ``x-signature: ts=<ts>,v1=<hex digest>``.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import hmac


@dataclass(frozen=True, slots=True)
class SignatureHeader:
    timestamp: str
    digest: str


def build_manifest(*, data_id: str, request_id: str, timestamp: str) -> str:
    return f"id:{data_id};request-id:{request_id};ts:{timestamp};"


def compute_signature(*, secret: str, data_id: str, request_id: str, timestamp: str) -> str:
    manifest = build_manifest(data_id=data_id, request_id=request_id, timestamp=timestamp)
    return hmac.new(secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256).hexdigest()


def parse_signature_header(value: str | None) -> SignatureHeader | None:
    """Extract ``ts`` and ``v1`` from the header; ``None`` when either is missing."""
    if not value:
        return None

    timestamp = ""
    digest = ""
    for part in value.split(","):
        key, sep, item = part.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key == "ts":
            timestamp = item.strip()
        elif key == "v1":
            digest = item.strip()

    if not timestamp or not digest:
        return None
    return SignatureHeader(timestamp=timestamp, digest=digest)


def verify_signature(
    *,
    secret: str,
    data_id: str,
    request_id: str,
    header: SignatureHeader,
) -> bool:
    expected = compute_signature(
        secret=secret,
        data_id=data_id,
        request_id=request_id,
        timestamp=header.timestamp,
    )
    return hmac.compare_digest(expected.encode("utf-8"), header.digest.encode("utf-8"))
