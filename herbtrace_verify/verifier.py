"""
herbtrace_verify/verifier.py - Offline Chain Verifier

Re-checks an exported chain (chain.json) without a running ledger.

Guarantees:
- Recompute every block digest and event digest
- Check index continuity and previous-digest links
- Check the proof-of-work prefix on every sealed block
- Report the block index (and event id) of every finding

Properties:
- Runs offline
- No ledger dependency, only the shared hashing primitives
- Deterministic
- Stateless
"""
import json
from typing import Any, Dict, List, Optional, Set

from herbtrace_sdk import hashing
from herbtrace_sdk.events import EventKind

from .errors import (
    VerificationStatus,
    VerificationReport,
    Finding,
    FindingType,
    FindingSeverity,
)


GENESIS_PREVIOUS_DIGEST = "0"
DEFAULT_DIFFICULTY = 2

BLOCK_FIELDS = ("index", "timestamp", "events", "previous_digest", "sealer_id", "nonce", "digest")
EVENT_FIELDS = ("event_id", "kind", "node_id", "payload", "timestamp", "digest")


def _fatal(finding_type: FindingType, message: str, **kwargs) -> Finding:
    return Finding(
        finding_type=finding_type,
        severity=FindingSeverity.FATAL,
        message=message,
        **kwargs,
    )


def _check_genesis(block: Dict[str, Any]) -> List[Finding]:
    findings = []
    if block.get("index") != 0:
        findings.append(_fatal(
            FindingType.GENESIS_INVALID,
            f"Genesis block has index {block.get('index')}",
            block_index=0,
        ))
    if block.get("previous_digest") != GENESIS_PREVIOUS_DIGEST:
        findings.append(_fatal(
            FindingType.GENESIS_INVALID,
            "Genesis previous_digest must be '0'",
            block_index=0,
            details={"recorded": block.get("previous_digest")},
        ))
    events = block.get("events") if isinstance(block.get("events"), list) else []
    if len(events) != 1 or not isinstance(events[0], dict) or events[0].get("kind") != EventKind.GENESIS.value:
        findings.append(_fatal(
            FindingType.GENESIS_INVALID,
            "Genesis block must hold exactly one Genesis event",
            block_index=0,
        ))
    return findings


def _check_events(block_index: int, events: List[Any]) -> List[Finding]:
    findings = []
    for event in events:
        if not isinstance(event, dict) or any(k not in event for k in EVENT_FIELDS):
            findings.append(_fatal(
                FindingType.MALFORMED,
                f"Malformed event in block {block_index}",
                block_index=block_index,
                event_id=event.get("event_id") if isinstance(event, dict) else None,
            ))
            continue

        try:
            computed = hashing.event_digest(
                event["event_id"], event["kind"], event["payload"], event["timestamp"], event["node_id"]
            )
        except (AttributeError, TypeError, ValueError) as e:
            findings.append(_fatal(
                FindingType.EVENT_DIGEST_MISMATCH,
                f"Cannot canonicalize event in block {block_index}: {e}",
                block_index=block_index,
                event_id=event["event_id"],
            ))
            continue

        if computed != event["digest"]:
            findings.append(_fatal(
                FindingType.EVENT_DIGEST_MISMATCH,
                f"Event digest mismatch in block {block_index}",
                block_index=block_index,
                event_id=event["event_id"],
                details={"computed": computed, "recorded": event["digest"]},
            ))
    return findings


def verify_chain(
    blocks: List[Dict[str, Any]],
    difficulty: int = DEFAULT_DIFFICULTY,
    trusted_sealers: Optional[Set[str]] = None,
) -> VerificationReport:
    """
    Verify an exported chain's integrity.

    Args:
        blocks: Exported blocks, genesis first (from chain.json)
        difficulty: Leading zero characters every sealed block digest needs
        trusted_sealers: If given, sealer ids outside this set are fatal

    Returns:
        VerificationReport with PASS/FAIL status
    """
    findings: List[Finding] = []

    if not blocks:
        return VerificationReport(
            status=VerificationStatus.FAIL,
            block_count=0,
            event_count=0,
            difficulty=difficulty,
            genesis_digest=None,
            final_digest=None,
            findings=[_fatal(FindingType.GENESIS_INVALID, "Empty chain - no genesis block")],
        )

    event_count = 0
    prev_digest: Optional[str] = None

    for i, block in enumerate(blocks):
        if not isinstance(block, dict) or any(k not in block for k in BLOCK_FIELDS):
            findings.append(_fatal(FindingType.MALFORMED, f"Malformed block at position {i}", block_index=i))
            prev_digest = None
            continue

        events = block["events"] if isinstance(block["events"], list) else []
        event_count += len(events)

        # 1. Genesis shape
        if i == 0:
            findings.extend(_check_genesis(block))

        # 2. Index continuity
        if block["index"] != i:
            findings.append(_fatal(
                FindingType.SEQUENCE_VIOLATION,
                f"Expected block index {i}, got {block['index']}",
                block_index=i,
            ))

        # 3. Link to the stored digest of the previous block
        if i > 0 and prev_digest is not None and block["previous_digest"] != prev_digest:
            findings.append(_fatal(
                FindingType.CHAIN_BREAK,
                f"Chain break at block {i}: previous_digest mismatch",
                block_index=i,
                details={"expected": prev_digest, "recorded": block["previous_digest"]},
            ))

        # 4. Recompute block digest
        try:
            computed = hashing.block_digest(
                block["index"], block["timestamp"], events, block["previous_digest"], block["nonce"]
            )
        except (TypeError, ValueError) as e:
            computed = None
            findings.append(_fatal(
                FindingType.HASH_MISMATCH,
                f"Cannot compute digest of block {i}: {e}",
                block_index=i,
            ))
        if computed is not None and computed != block["digest"]:
            findings.append(_fatal(
                FindingType.HASH_MISMATCH,
                f"Block digest mismatch at block {i}",
                block_index=i,
                details={"computed": computed, "recorded": block["digest"]},
            ))

        # 5. Proof of work (genesis is not mined)
        if i > 0 and not hashing.meets_difficulty(str(block["digest"]), difficulty):
            findings.append(_fatal(
                FindingType.POW_INVALID,
                f"Block {i} digest does not start with {difficulty} zeros",
                block_index=i,
                details={"digest": block["digest"]},
            ))

        # 6. Sealer
        if i > 0 and trusted_sealers is not None and block["sealer_id"] not in trusted_sealers:
            findings.append(_fatal(
                FindingType.SEALER_UNTRUSTED,
                f"Unknown sealer: {block['sealer_id']}",
                block_index=i,
            ))

        # 7. Event digests
        findings.extend(_check_events(i, events))

        prev_digest = block["digest"]

    fatal_count = sum(1 for f in findings if f.severity == FindingSeverity.FATAL)
    status = VerificationStatus.FAIL if fatal_count > 0 else VerificationStatus.PASS

    first, last = blocks[0], blocks[-1]
    return VerificationReport(
        status=status,
        block_count=len(blocks),
        event_count=event_count,
        difficulty=difficulty,
        genesis_digest=first.get("digest") if isinstance(first, dict) else None,
        final_digest=last.get("digest") if isinstance(last, dict) else None,
        findings=findings,
    )


def verify_file(filepath: str, **kwargs) -> VerificationReport:
    """
    Verify a chain from a JSON file.

    Convenience wrapper for verify_chain.
    """
    with open(filepath, 'r') as f:
        blocks = json.load(f)

    return verify_chain(blocks, **kwargs)
