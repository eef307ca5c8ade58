#!/usr/bin/env python3
"""
Unified test runner for SmartCRM services.

Runs each test suite through pytest, reports results, and exits non-zero on failure.

Usage:
    python scripts/run_tests.py              # Run all suites
    python scripts/run_tests.py duplicates   # Run only duplicate detection tests
    python scripts/run_tests.py scoring      # Run only smart scoring tests
    python scripts/run_tests.py outreach     # Run composer and SDR preset tests
    python scripts/run_tests.py api          # Run only API tests
"""

import subprocess
import sys
import os
import time

PROJECT_ROOT = os.path.join(os.path.dirname(__file__), "..")

TEST_SUITES = {
    "duplicates": [
        "tests/unit/test_similarity.py",
        "tests/unit/test_duplicate_detector.py",
    ],
    "scoring": [
        "tests/unit/test_smart_scorer.py",
    ],
    "outreach": [
        "tests/unit/test_llm_gateway.py",
        "tests/unit/test_email_composer.py",
        "tests/unit/test_sdr_agents.py",
    ],
    "infra": [
        "tests/unit/test_error_handler.py",
    ],
    "api": [
        "tests/test_api.py",
    ],
}


def run_suite(path):
    """Run a single test file under pytest and return (passed, output)."""
    full = os.path.join(PROJECT_ROOT, path)
    if not os.path.exists(full):
        return False, f"  SKIP: {path} (file not found)"
    try:
        result = subprocess.run(
            [sys.executable, "-m", "pytest", "-q", path],
            capture_output=True, text=True, timeout=120,
            cwd=PROJECT_ROOT,
        )
        last_line = result.stdout.strip().split("\n")[-1] if result.stdout.strip() else ""
        if result.returncode == 0:
            return True, f"  PASS: {path} -- {last_line}"
        return False, f"  FAIL: {path} -- {last_line or 'unknown error'}"
    except subprocess.TimeoutExpired:
        return False, f"  TIMEOUT: {path}"


def main():
    groups = list(TEST_SUITES.keys())

    if len(sys.argv) > 1:
        requested = sys.argv[1].lower()
        if requested in TEST_SUITES:
            groups = [requested]
        else:
            print(f"Unknown group '{requested}'. Available: {', '.join(TEST_SUITES.keys())}")
            sys.exit(1)

    print("=" * 60)
    print("SMARTCRM TEST RUNNER")
    print("=" * 60)

    start = time.time()
    total_passed = 0
    total_failed = 0
    failures = []

    for group in groups:
        print(f"\n--- {group.upper()} ---")
        for f in TEST_SUITES[group]:
            passed, msg = run_suite(f)
            print(msg)
            if passed:
                total_passed += 1
            else:
                total_failed += 1
                failures.append(f)

    elapsed = time.time() - start
    print(f"\n{'=' * 60}")
    print(f"RESULTS: {total_passed} suites passed, {total_failed} failed ({elapsed:.1f}s)")
    if failures:
        print("FAILURES:")
        for f in failures:
            print(f"  - {f}")
    print("=" * 60)

    sys.exit(1 if total_failed > 0 else 0)


if __name__ == "__main__":
    main()
