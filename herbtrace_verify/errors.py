"""
herbtrace_verify/errors.py - Verification Error Taxonomy

Machine-readable verification outcomes.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional


class VerificationStatus(str, Enum):
    """Final verification outcome."""
    PASS = "PASS"
    FAIL = "FAIL"


class FindingType(str, Enum):
    """Classification of individual findings."""
    # Fatal (cause FAIL)
    GENESIS_INVALID = "GENESIS_INVALID"
    SEQUENCE_VIOLATION = "SEQUENCE_VIOLATION"
    CHAIN_BREAK = "CHAIN_BREAK"
    HASH_MISMATCH = "HASH_MISMATCH"
    POW_INVALID = "POW_INVALID"
    EVENT_DIGEST_MISMATCH = "EVENT_DIGEST_MISMATCH"
    SEALER_UNTRUSTED = "SEALER_UNTRUSTED"
    MALFORMED = "MALFORMED"


class FindingSeverity(str, Enum):
    FATAL = "FATAL"  # Causes FAIL


@dataclass
class Finding:
    """Individual verification finding."""
    finding_type: FindingType
    severity: FindingSeverity
    message: str
    block_index: Optional[int] = None
    event_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.finding_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "block_index": self.block_index,
            "event_id": self.event_id,
            "details": self.details or {},
        }


@dataclass
class VerificationReport:
    """Complete verification report."""
    status: VerificationStatus
    block_count: int
    event_count: int
    difficulty: int
    genesis_digest: Optional[str]
    final_digest: Optional[str]
    findings: List[Finding] = field(default_factory=list)

    @property
    def first_invalid_index(self) -> Optional[int]:
        """Lowest block index carrying a fatal finding, or None."""
        indices = [
            f.block_index for f in self.findings
            if f.severity == FindingSeverity.FATAL and f.block_index is not None
        ]
        return min(indices) if indices else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "block_count": self.block_count,
            "event_count": self.event_count,
            "difficulty": self.difficulty,
            "genesis_digest": self.genesis_digest,
            "final_digest": self.final_digest,
            "first_invalid_index": self.first_invalid_index,
            "findings": [f.to_dict() for f in self.findings],
            "exit_code": self.exit_code,
        }

    @property
    def exit_code(self) -> int:
        """
        Map the report's verification status to a machine-friendly exit code.

        Returns:
            int: 0 = PASS, 2 = FAIL.
        """
        if self.status == VerificationStatus.PASS:
            return 0
        return 2
