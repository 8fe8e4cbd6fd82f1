"""
herbtrace_verify/test_verifier.py - Offline verifier tests

Chains are produced by a real ledger and exported, then verified
offline. Tampering is applied to the exported dicts.
"""
import copy

import pytest

from herbtrace_sdk import hashing
from herbtrace_sdk.events import EventKind
from herbtrace_ledger.export import export_chain

from .errors import FindingType, VerificationStatus
from .verifier import verify_chain


def make_collection(quantity):
    return {
        "farmer_id": "FARMER001",
        "species": "ashwagandha",
        "quantity": quantity,
        "gps": {"latitude": 27.1952, "longitude": 73.3119},
    }


@pytest.fixture
def exported(nodes):
    """Genesis plus two sealed blocks of collections."""
    nodes.submit_event("HARV001", EventKind.COLLECTION, make_collection(5))
    nodes.submit_event("HARV001", EventKind.COLLECTION, make_collection(6))
    nodes.seal_block()
    nodes.submit_event("HARV001", EventKind.COLLECTION, make_collection(7))
    nodes.seal_block()
    return export_chain(nodes)


def finding_types(report):
    return {f.finding_type for f in report.findings}


class TestValidChain:

    def test_exported_chain_passes(self, exported):
        report = verify_chain(exported, difficulty=2)
        assert report.status == VerificationStatus.PASS
        assert report.exit_code == 0
        assert report.block_count == 3
        assert report.event_count == 4
        assert report.first_invalid_index is None
        assert report.final_digest == exported[-1]["digest"]

    def test_trusted_sealers(self, exported):
        sealer = exported[1]["sealer_id"]
        assert verify_chain(exported, trusted_sealers={sealer}).status == VerificationStatus.PASS

        report = verify_chain(exported, trusted_sealers={"someone-else"})
        assert FindingType.SEALER_UNTRUSTED in finding_types(report)


class TestTamper:

    def test_payload_tamper(self, exported):
        """Editing a payload breaks both the event digest and the block digest."""
        chain = copy.deepcopy(exported)
        chain[1]["events"][0]["payload"]["quantity"] = 500

        report = verify_chain(chain)
        assert report.status == VerificationStatus.FAIL
        assert report.exit_code == 2
        assert report.first_invalid_index == 1
        assert {FindingType.HASH_MISMATCH, FindingType.EVENT_DIGEST_MISMATCH} <= finding_types(report)

        event_finding = next(
            f for f in report.findings if f.finding_type == FindingType.EVENT_DIGEST_MISMATCH
        )
        assert event_finding.event_id == chain[1]["events"][0]["event_id"]

    def test_rehashed_block_breaks_next_link(self, exported):
        chain = copy.deepcopy(exported)
        block = chain[1]
        block["events"] = block["events"][:1]
        block["digest"] = hashing.block_digest(
            block["index"], block["timestamp"], block["events"], block["previous_digest"], block["nonce"]
        )

        report = verify_chain(chain)
        assert report.status == VerificationStatus.FAIL
        types = finding_types(report)
        assert FindingType.CHAIN_BREAK in types or FindingType.POW_INVALID in types

    def test_removed_block(self, exported):
        chain = copy.deepcopy(exported)
        del chain[1]

        report = verify_chain(chain)
        assert FindingType.SEQUENCE_VIOLATION in finding_types(report)
        assert FindingType.CHAIN_BREAK in finding_types(report)
        assert report.first_invalid_index == 1

    def test_insufficient_work(self, exported):
        report = verify_chain(exported, difficulty=8)
        assert FindingType.POW_INVALID in finding_types(report)


class TestMalformed:

    def test_empty_chain(self):
        report = verify_chain([])
        assert report.status == VerificationStatus.FAIL
        assert FindingType.GENESIS_INVALID in finding_types(report)

    def test_bad_genesis(self, exported):
        chain = copy.deepcopy(exported)
        chain[0]["previous_digest"] = "abc"
        report = verify_chain(chain)
        assert FindingType.GENESIS_INVALID in finding_types(report)
        assert report.first_invalid_index == 0

    def test_block_missing_fields(self, exported):
        chain = copy.deepcopy(exported)
        del chain[2]["nonce"]
        report = verify_chain(chain)
        assert FindingType.MALFORMED in finding_types(report)
        assert report.first_invalid_index == 2

    def test_report_dict(self, exported):
        chain = copy.deepcopy(exported)
        chain[2]["events"][0]["node_id"] = "HARV999"
        data = verify_chain(chain).to_dict()
        assert data["status"] == "FAIL"
        assert data["first_invalid_index"] == 2
        assert data["findings"][0]["block_index"] == 2
