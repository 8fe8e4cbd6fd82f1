#!/usr/bin/env python3
"""
herbtrace_verify/cli.py - Command-Line Interface

Usage:
    herbtrace-verify verify chain.json
    herbtrace-verify verify chain.json --difficulty 3 --output report.json

Exit Codes:
    0 = PASS
    2 = FAIL
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from herbtrace_ledger.config import settings

from .verifier import verify_file

logger = logging.getLogger(__name__)


def main(argv=None):
    """
    Parse command-line arguments and dispatch the herbtrace-verify CLI.

    The "verify" subcommand accepts:
    - chain_file: path to an exported chain.json
    - --difficulty: leading zeros required on sealed block digests
    - --sealers: optional list of trusted sealer ids
    - --output / -o: optional path to write a JSON verification report
    - --quiet / -q: suppress verbose output and only emit the exit code
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        prog="herbtrace-verify",
        description="Offline verifier for exported herbtrace chains"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    verify_parser = subparsers.add_parser("verify", help="Verify an exported chain")
    verify_parser.add_argument("chain_file", help="Path to chain.json")
    verify_parser.add_argument(
        "--difficulty",
        type=int,
        default=settings.difficulty,
        help="Leading zeros required on block digests (default: %(default)s)"
    )
    verify_parser.add_argument(
        "--sealers",
        nargs="+",
        default=None,
        help="Trusted sealer identifiers"
    )
    verify_parser.add_argument(
        "--output", "-o",
        help="Path to write verification_report.json"
    )
    verify_parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only output exit code"
    )

    args = parser.parse_args(argv)

    if args.command == "verify":
        run_verify(args)


def run_verify(args):
    """
    Verify the chain file named in `args` and exit with the report's exit code.

    Exits with code 2 if the file is missing or cannot be parsed.
    """
    chain_path = Path(args.chain_file)

    if not chain_path.exists():
        print(f"Error: File not found: {chain_path}", file=sys.stderr)
        sys.exit(2)

    try:
        report = verify_file(
            str(chain_path),
            difficulty=args.difficulty,
            trusted_sealers=set(args.sealers) if args.sealers else None,
        )
    except (OSError, ValueError) as e:
        print(f"Error: Verification failed: {e}", file=sys.stderr)
        sys.exit(2)

    logger.info("Verified %s: %s (%d findings)", chain_path, report.status.value, len(report.findings))

    report_dict = report.to_dict()

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(report_dict, f, indent=2)
        if not args.quiet:
            print(f"Report written to: {args.output}")

    if not args.quiet:
        print(f"\n{'='*60}")
        print(f"VERIFICATION RESULT: {report.status.value}")
        print(f"{'='*60}")
        print(f"Block Count:      {report.block_count}")
        print(f"Event Count:      {report.event_count}")
        print(f"Difficulty:       {report.difficulty}")
        print(f"Genesis Digest:   {report.genesis_digest}")
        print(f"Final Digest:     {report.final_digest}")

        if report.findings:
            print(f"\nFindings ({len(report.findings)}):")
            for f in report.findings:
                where = f"block {f.block_index}" if f.block_index is not None else "chain"
                print(f"  [{f.severity.value}] {f.finding_type.value} at {where}: {f.message}")

        print(f"\nExit Code: {report.exit_code}")

    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
