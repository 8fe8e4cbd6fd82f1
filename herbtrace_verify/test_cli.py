"""
herbtrace_verify/test_cli.py - CLI Coverage Tests

Argument parsing, report output and exit codes.
"""
import json

import pytest

from herbtrace_sdk.events import EventKind
from herbtrace_ledger.export import export_chain_json

from .cli import main


@pytest.fixture
def chain_file(nodes, tmp_path):
    nodes.submit_event("HARV001", EventKind.COLLECTION, {
        "farmer_id": "FARMER001",
        "species": "ashwagandha",
        "quantity": 12.5,
        "gps": {"latitude": 27.1952, "longitude": 73.3119},
    })
    nodes.seal_block()
    path = tmp_path / "chain.json"
    path.write_text(export_chain_json(nodes))
    return path


class TestCLIVerify:
    """Test basic CLI verification flow."""

    def test_valid_chain(self, chain_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["verify", str(chain_file)])

        assert exc_info.value.code == 0
        captured = capsys.readouterr()
        assert "VERIFICATION RESULT: PASS" in captured.out
        assert "Block Count:      2" in captured.out

    def test_output_file(self, chain_file, tmp_path):
        output = tmp_path / "report.json"
        with pytest.raises(SystemExit) as exc_info:
            main(["verify", str(chain_file), "--output", str(output), "--quiet"])

        assert exc_info.value.code == 0
        report = json.loads(output.read_text())
        assert report["status"] == "PASS"
        assert report["exit_code"] == 0

    def test_quiet_mode(self, chain_file, capsys):
        with pytest.raises(SystemExit):
            main(["verify", str(chain_file), "-q"])
        assert capsys.readouterr().out == ""

    def test_tampered_chain_fails(self, chain_file, capsys):
        blocks = json.loads(chain_file.read_text())
        blocks[1]["events"][0]["payload"]["quantity"] = 99
        chain_file.write_text(json.dumps(blocks))

        with pytest.raises(SystemExit) as exc_info:
            main(["verify", str(chain_file)])

        assert exc_info.value.code == 2
        out = capsys.readouterr().out
        assert "VERIFICATION RESULT: FAIL" in out
        assert "HASH_MISMATCH at block 1" in out

    def test_difficulty_flag(self, chain_file):
        with pytest.raises(SystemExit) as exc_info:
            main(["verify", str(chain_file), "--difficulty", "8", "-q"])
        assert exc_info.value.code == 2


class TestCLIErrors:

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["verify", str(tmp_path / "absent.json")])
        assert exc_info.value.code == 2
        assert "File not found" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path, capsys):
        path = tmp_path / "chain.json"
        path.write_text("{not json")
        with pytest.raises(SystemExit) as exc_info:
            main(["verify", str(path)])
        assert exc_info.value.code == 2
        assert "Verification failed" in capsys.readouterr().err

    def test_command_required(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
