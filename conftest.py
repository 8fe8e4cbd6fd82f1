"""Test configuration and fixtures."""
from datetime import datetime, timezone

import pytest

from herbtrace_ledger.clock import FixedClock
from herbtrace_ledger.config import LedgerSettings, DEFAULT_RULES_PATH
from herbtrace_ledger.ledger import SupplyLedger
from herbtrace_ledger.rules import RuleBook

# Mid-November: inside the ashwagandha collection season
SEASON_START = datetime(2024, 11, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def rulebook():
    return RuleBook.load(DEFAULT_RULES_PATH)


@pytest.fixture
def clock():
    return FixedClock(SEASON_START)


@pytest.fixture
def ledger(rulebook, clock):
    """Ledger with the packaged rules, difficulty 2 and a fixed in-season clock."""
    return SupplyLedger(
        settings=LedgerSettings(difficulty=2, cancel_check_interval=1),
        rulebook=rulebook,
        clock=clock,
    )


@pytest.fixture
def nodes(ledger):
    """One node per role."""
    ledger.register_node("HARV001", "harvester", "pk-harv")
    ledger.register_node("PROC001", "processor", "pk-proc")
    ledger.register_node("LAB001", "tester", "pk-lab")
    ledger.register_node("MFG001", "manufacturer", "pk-mfg")
    ledger.register_node("REG001", "regulator", "pk-reg")
    return ledger
