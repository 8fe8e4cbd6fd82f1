"""
herbtrace_ledger/test_chain.py - Chain and sealing tests

Tests:
- Genesis shape
- Sealing drains exactly once, in order
- Empty-pool and cancelled seals change nothing
- Tamper detection (with and without digest recomputation)
- Append-only link enforcement
"""
import threading
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from herbtrace_sdk import hashing
from herbtrace_sdk.events import EventKind

from .chain import GENESIS_PREVIOUS_DIGEST, LedgerChain
from .clock import FixedClock
from .config import LedgerSettings
from .errors import LedgerException, LedgerErrorCode
from .ledger import SupplyLedger


def make_collection(quantity=5.0, farmer_id="FARMER001"):
    return {
        "farmer_id": farmer_id,
        "species": "ashwagandha",
        "quantity": quantity,
        "gps": {"latitude": 27.1952, "longitude": 73.3119},
    }


def fill_pool(ledger, count=3):
    return [
        ledger.submit_event("HARV001", EventKind.COLLECTION, make_collection(quantity=i + 1))
        for i in range(count)
    ]


class TestGenesis:

    def test_genesis_block(self, ledger):
        genesis = ledger.get_block(0)
        assert genesis.index == 0
        assert genesis.previous_digest == GENESIS_PREVIOUS_DIGEST
        assert len(genesis.events) == 1
        assert genesis.events[0].kind == EventKind.GENESIS
        assert genesis.digest == genesis.compute_digest()

    def test_fresh_chain_is_valid(self, ledger):
        assert ledger.validate_chain() is True
        assert len(ledger.get_chain()) == 1


class TestSealing:

    def test_seal_drains_pool_in_order(self, nodes):
        submitted = fill_pool(nodes, 3)

        block = nodes.seal_block("AUTH")

        assert block.index == 1
        assert block.sealer_id == "AUTH"
        assert [e.event_id for e in block.events] == [e.event_id for e in submitted]
        assert nodes.pending_events() == ()
        assert block.previous_digest == nodes.get_block(0).digest
        assert hashing.meets_difficulty(block.digest, 2)
        assert block.digest == block.compute_digest()

    def test_events_sealed_exactly_once(self, nodes):
        fill_pool(nodes, 2)
        nodes.seal_block()
        fill_pool(nodes, 1)
        nodes.seal_block()

        ids = [e.event_id for b in nodes.get_chain() for e in b.events]
        assert len(ids) == len(set(ids)) == 4

    def test_default_sealer_is_authority(self, nodes):
        fill_pool(nodes, 1)
        assert nodes.seal_block().sealer_id == nodes.settings.authority_id

    def test_empty_pool(self, ledger):
        with pytest.raises(LedgerException) as exc_info:
            ledger.seal_block()
        assert exc_info.value.error.error_code == LedgerErrorCode.EMPTY_POOL
        assert len(ledger.get_chain()) == 1

    def test_cancelled_seal_leaves_pool_intact(self, rulebook):
        """A hopeless difficulty plus a set cancel event aborts the search."""
        ledger = SupplyLedger(
            settings=LedgerSettings(difficulty=8, cancel_check_interval=1),
            rulebook=rulebook,
            clock=FixedClock(datetime(2024, 11, 15, 10, 0, tzinfo=timezone.utc)),
        )
        ledger.register_node("HARV001", "harvester", "pk")
        submitted = fill_pool(ledger, 2)

        cancel = threading.Event()
        cancel.set()
        with pytest.raises(LedgerException) as exc_info:
            ledger.seal_block(cancel=cancel)

        assert exc_info.value.error.error_code == LedgerErrorCode.SEAL_CANCELLED
        assert [e.event_id for e in ledger.pending_events()] == [e.event_id for e in submitted]
        assert len(ledger.get_chain()) == 1

    def test_admissions_during_seal_are_kept(self, nodes):
        """Submits racing a seal land either in the block or in the pool, never lost."""
        fill_pool(nodes, 1)
        start = threading.Event()
        admitted = []

        def submitter():
            start.wait()
            for _ in range(5):
                admitted.append(
                    nodes.submit_event("HARV001", EventKind.COLLECTION, make_collection(quantity=1)).event_id
                )

        t = threading.Thread(target=submitter)
        t.start()
        start.set()
        nodes.seal_block()
        t.join()

        sealed = {e.event_id for b in nodes.get_chain() for e in b.events}
        pooled = {e.event_id for e in nodes.pending_events()}
        assert sealed.isdisjoint(pooled)
        assert set(admitted) <= sealed | pooled


class TestIntegrity:

    def test_validation_is_idempotent(self, nodes):
        fill_pool(nodes, 2)
        nodes.seal_block()
        assert nodes.validate_chain() is True
        assert nodes.validate_chain() is True

    def test_payload_tamper_detected(self, nodes):
        fill_pool(nodes, 2)
        nodes.seal_block()
        chain = nodes._chain

        block = chain._blocks[1]
        event = block.events[0]
        forged = replace(event, payload=event.payload.model_copy(update={"quantity": 500.0}))
        chain._blocks[1] = replace(block, events=(forged,) + block.events[1:])

        assert nodes.validate_chain() is False
        assert nodes.first_invalid_block() == 1

    def test_tamper_with_recomputed_digest_detected(self, nodes):
        """Re-hashing the forged block breaks the next link or the work prefix."""
        fill_pool(nodes, 1)
        nodes.seal_block()
        fill_pool(nodes, 1)
        nodes.seal_block()
        chain = nodes._chain

        block = chain._blocks[1]
        event = block.events[0]
        forged = replace(event, payload=event.payload.model_copy(update={"quantity": 500.0}))
        tampered = replace(block, events=(forged,))
        chain._blocks[1] = replace(tampered, digest=tampered.compute_digest())

        assert nodes.validate_chain() is False
        assert nodes.first_invalid_block() in (1, 2)

    def test_reads_return_copies(self, nodes):
        fill_pool(nodes, 1)
        nodes.seal_block()
        first = nodes.get_block(1)
        second = nodes.get_block(1)
        assert first == second
        assert first is not second


class TestAppend:

    def test_out_of_sequence_block_rejected(self, clock):
        chain = LedgerChain(clock, difficulty=0)
        genesis = chain.last()
        stray = replace(genesis, index=5, previous_digest=genesis.digest)

        with pytest.raises(LedgerException) as exc_info:
            chain.append(stray)
        assert exc_info.value.error.error_code == LedgerErrorCode.CHAIN_LINK_INVALID
        assert len(chain) == 1

    def test_wrong_previous_digest_rejected(self, clock):
        chain = LedgerChain(clock, difficulty=0)
        genesis = chain.last()
        stray = replace(genesis, index=1, previous_digest="f" * 64)

        with pytest.raises(LedgerException) as exc_info:
            chain.append(stray)
        assert exc_info.value.error.details["received_index"] == 1
