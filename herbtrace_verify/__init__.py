"""Offline verification of exported herbtrace chains."""
from .errors import Finding, FindingSeverity, FindingType, VerificationReport, VerificationStatus
from .verifier import verify_chain, verify_file

__all__ = [
    "Finding",
    "FindingSeverity",
    "FindingType",
    "VerificationReport",
    "VerificationStatus",
    "verify_chain",
    "verify_file",
]
