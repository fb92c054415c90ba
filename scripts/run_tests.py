#!/usr/bin/env python3
"""
Run the visit compliance engine test suite, optionally one layer at a time.

Usage:
    python scripts/run_tests.py [--layer LAYER ...] [--coverage] [--verbose] [-k EXPR]

Examples:
    python scripts/run_tests.py                          # Everything
    python scripts/run_tests.py --layer engine           # Pure engine components only
    python scripts/run_tests.py --layer services --layer store
    python scripts/run_tests.py --coverage -k finalize   # Finalize tests with coverage
"""

import argparse
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
UNIT_TESTS = PROJECT_ROOT / "tests" / "unit"

# Layer name -> test module globs under tests/unit
LAYERS = {
    "engine": [
        "test_conditions.py",
        "test_triggers.py",
        "test_coding.py",
        "test_evidence.py",
        "test_completion.py",
        "test_readiness.py",
    ],
    "store": ["test_store.py"],
    "services": ["test_services_*.py", "test_notes.py"],
    "surfaces": ["test_routers_*.py", "test_mcp_*.py", "test_main.py", "test_security.py"],
    "core": ["test_config.py", "test_errors.py", "test_audit.py", "test_validation.py", "test_logging.py"],
}


def layer_paths(layers: list[str]) -> list[str]:
    paths = []
    for layer in layers:
        for pattern in LAYERS[layer]:
            paths.extend(str(p.relative_to(PROJECT_ROOT)) for p in sorted(UNIT_TESTS.glob(pattern)))
    return paths


def build_command(args: argparse.Namespace) -> list[str]:
    cmd = ["uv", "run", "pytest"]
    if args.layer:
        cmd.extend(layer_paths(args.layer))
    if args.coverage:
        cmd.extend(["--cov=compliance_engine", "--cov-report=term-missing"])
    cmd.append("-v" if args.verbose else "-q")
    if args.k:
        cmd.extend(["-k", args.k])
    return cmd


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--layer", action="append", choices=sorted(LAYERS), help="Test layer to run (repeatable)")
    parser.add_argument("--coverage", action="store_true", help="Report coverage for compliance_engine")
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument("-k", help="pytest keyword expression")
    args = parser.parse_args()

    cmd = build_command(args)
    print(f"Running: {' '.join(cmd)}")
    print("-" * 60)

    result = subprocess.run(cmd, cwd=PROJECT_ROOT)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
