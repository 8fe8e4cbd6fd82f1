"""
herbtrace_ledger/export.py - Read-Only Export

Responsibilities:
- Render the sealed chain as plain dicts / JSON (chain.json)
- Cannot write
- Cannot seal
"""
import json
from typing import Any, Dict, List

from .ledger import SupplyLedger
from .models import Block


def export_chain(ledger: SupplyLedger) -> List[Dict[str, Any]]:
    """
    Export every sealed block, genesis first, as a list of dictionaries.

    Each block carries `index`, `timestamp`, `events`, `previous_digest`,
    `sealer_id`, `nonce` and `digest`. Optional payload fields and event
    validation outcomes appear only when present.
    """
    return ledger.export()


def export_chain_json(ledger: SupplyLedger, indent: int = 2) -> str:
    return json.dumps(export_chain(ledger), indent=indent)


def load_blocks(data: List[Dict[str, Any]]) -> List[Block]:
    """Rebuild Block records from exported dicts. Digests are not re-checked here."""
    return [Block.from_dict(b) for b in data]
