"""
herbtrace_ledger/errors.py - Error Taxonomy

Every failure the engine can report is a LedgerErrorCode carried by an
immutable LedgerError inside a LedgerException. Nothing is retried here;
retry policy belongs to the caller.
"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, Any


class LedgerErrorCode(str, Enum):
    INVALID_ROLE = "LEDGER_INVALID_ROLE"
    DUPLICATE_NODE = "LEDGER_DUPLICATE_NODE"
    UNKNOWN_NODE = "LEDGER_UNKNOWN_NODE"
    INACTIVE_NODE = "LEDGER_INACTIVE_NODE"
    FORBIDDEN = "LEDGER_FORBIDDEN"
    INVALID_PAYLOAD = "LEDGER_INVALID_PAYLOAD"
    CONTRACT_VIOLATION = "LEDGER_CONTRACT_VIOLATION"
    EMPTY_POOL = "LEDGER_EMPTY_POOL"
    SEAL_CANCELLED = "LEDGER_SEAL_CANCELLED"
    CHAIN_LINK_INVALID = "LEDGER_CHAIN_LINK_INVALID"
    NOT_FOUND = "LEDGER_NOT_FOUND"


@dataclass(frozen=True)
class LedgerError:
    """Immutable error record."""
    error_code: LedgerErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details or {},
        }


class LedgerException(Exception):
    """Raised by every ledger operation that fails."""
    def __init__(self, error: LedgerError):
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> LedgerErrorCode:
        return self.error.error_code


# Pre-defined error factories for consistency
def invalid_role(role: Any, allowed) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.INVALID_ROLE,
        message=f"Invalid node role: {role}",
        details={"received": str(role), "allowed": list(allowed)},
    )


def duplicate_node(node_id: str) -> LedgerError:
    """Re-registration is rejected; the existing node is left untouched."""
    return LedgerError(
        error_code=LedgerErrorCode.DUPLICATE_NODE,
        message=f"Node {node_id} is already registered",
        details={"node_id": node_id},
    )


def unknown_node(node_id: str) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.UNKNOWN_NODE,
        message=f"Node {node_id} not found",
        details={"node_id": node_id},
    )


def inactive_node(node_id: str) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.INACTIVE_NODE,
        message=f"Node {node_id} is inactive",
        details={"node_id": node_id},
    )


def forbidden(node_id: str, kind: str, required: Optional[str]) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.FORBIDDEN,
        message=f"Node {node_id} does not have permission for {kind}",
        details={"node_id": node_id, "kind": kind, "required_capability": required},
    )


def invalid_payload(kind: str, errors) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.INVALID_PAYLOAD,
        message=f"Payload does not match the {kind} schema",
        details={"kind": kind, "errors": errors},
    )


def contract_violation(rule: str, reason: str) -> LedgerError:
    """
    A business rule rejected the event.

    details["rule"] names the first failing rule, details["reason"] is the
    human-readable explanation.
    """
    return LedgerError(
        error_code=LedgerErrorCode.CONTRACT_VIOLATION,
        message=f"Smart contract validation failed: {reason}",
        details={"rule": rule, "reason": reason},
    )


def empty_pool() -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.EMPTY_POOL,
        message="No pending events to seal",
        details={},
    )


def seal_cancelled(block_index: int, attempts: int) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.SEAL_CANCELLED,
        message=f"Sealing of block {block_index} cancelled; pool left unchanged",
        details={"block_index": block_index, "attempts": attempts},
    )


def chain_link_invalid(expected_index: int, received_index: int, reason: str) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.CHAIN_LINK_INVALID,
        message=f"Block {received_index} cannot be appended: {reason}",
        details={"expected_index": expected_index, "received_index": received_index},
    )


def not_found(what: str, key: Any) -> LedgerError:
    return LedgerError(
        error_code=LedgerErrorCode.NOT_FOUND,
        message=f"{what} {key} not found",
        details={"what": what, "key": key},
    )
