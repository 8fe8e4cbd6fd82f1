"""In-memory permissioned ledger for herb supply-chain events."""
from .config import LedgerSettings
from .errors import LedgerError, LedgerErrorCode, LedgerException
from .ledger import SupplyLedger
from .models import Block, Capability, Event, LedgerStats, Node, Role
from .rules import RuleBook, RuleEngine

__all__ = [
    "LedgerSettings",
    "LedgerError",
    "LedgerErrorCode",
    "LedgerException",
    "SupplyLedger",
    "Block",
    "Capability",
    "Event",
    "LedgerStats",
    "Node",
    "Role",
    "RuleBook",
    "RuleEngine",
]
