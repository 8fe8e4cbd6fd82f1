"""
hashing.py - Digest functions shared by the ledger and the verifier

All preimages are canonical JSON objects; the field sets below are frozen.
Changing one invalidates every chain sealed before the change.
"""
import hashlib
from typing import Any, Dict, List

from . import jcs


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def event_digest(event_id: str, kind: str, payload: Dict[str, Any], timestamp: int, node_id: str) -> str:
    """
    Placeholder signature of an event.

    SHA-256 over the canonical (event_id, kind, payload, timestamp) object
    followed by the submitting node id. This is tamper evidence only: it is
    not verifiable against the node's public key.
    """
    signed_obj = {
        "event_id": event_id,
        "kind": kind,
        "payload": payload,
        "timestamp": timestamp,
    }
    return sha256_hex(jcs.canonicalize(signed_obj) + node_id.encode('utf-8'))


def contract_digest(event_id: str, timestamp: int, kind: str, node_id: str) -> str:
    """Digest recorded on the validation outcome of an admitted event."""
    return sha256_hex(jcs.canonicalize({
        "event_id": event_id,
        "timestamp": timestamp,
        "kind": kind,
        "node_id": node_id,
    }))


def block_digest(
    index: int,
    timestamp: int,
    events: List[Dict[str, Any]],
    previous_digest: str,
    nonce: int,
) -> str:
    """
    Block digest over index, timestamp, the serialized events,
    previous digest and nonce. `events` are the plain-dict forms
    produced by Event.to_dict().
    """
    return sha256_hex(jcs.canonicalize({
        "index": index,
        "timestamp": timestamp,
        "events": events,
        "previous_digest": previous_digest,
        "nonce": nonce,
    }))


def meets_difficulty(digest: str, difficulty: int) -> bool:
    return digest.startswith("0" * difficulty)
