#!/usr/bin/env python3
"""
Main Test Runner

Discovers and runs the unit and integration suites and prints a summary.
"""

import unittest
import sys
import time
import argparse
from pathlib import Path

# Add project root to path
# run_tests.py is in tests/run_tests.py, so we need to go up 1 level to get to project root
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))


def discover_tests(test_dir="tests"):
    """Discover all test modules in the test directory"""
    loader = unittest.TestLoader()

    if test_dir == "tests":
        start_dir = REPO_ROOT / "tests"
    elif test_dir.startswith("tests/"):
        start_dir = REPO_ROOT / test_dir
    else:
        start_dir = REPO_ROOT / "tests" / test_dir

    if not start_dir.exists():
        print(f"❌ Test directory not found: {start_dir}")
        return None

    if start_dir == REPO_ROOT / "tests":
        test_dirs = [p for p in sorted(start_dir.iterdir())
                     if p.is_dir() and not p.name.startswith(("_", "coverage"))]
    else:
        test_dirs = [start_dir]

    # test directories are plain folders, so each one is its own top level
    suite = unittest.TestSuite()
    for sub in test_dirs:
        suite.addTests(loader.discover(str(sub), pattern="test_*.py", top_level_dir=str(sub)))

    if suite.countTestCases() == 0:
        print(f"⚠️  No tests discovered in {start_dir}")
    return suite


def run_tests(suite, verbosity=2, failfast=False):
    """Run the test suite and return results"""
    runner = unittest.TextTestRunner(verbosity=verbosity, failfast=failfast, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    return result, time.time() - start_time


def print_test_summary(result, duration):
    """Print a summary of the test results"""
    print("\n" + "=" * 80)
    print("TEST SUMMARY")
    print("=" * 80)

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print(f"📊 Test Results:")
    print(f"   Total Tests: {total_tests}")
    print(f"   ✅ Passed: {passed}")
    print(f"   ❌ Failed: {failures}")
    print(f"   ⚠️  Errors: {errors}")
    print(f"   ⏭️  Skipped: {skipped}")
    print(f"   ⏱️  Duration: {duration:.2f} seconds")

    if failures == 0 and errors == 0:
        print(f"\n🎉 ALL TESTS PASSED! 🎉")
        return True
    print(f"\n💥 SOME TESTS FAILED! 💥")
    return False


def print_failure_details(result):
    """Print detailed information about test failures"""
    for title, items in (("❌ FAILURES:", result.failures), ("⚠️  ERRORS:", result.errors)):
        if not items:
            continue
        print(f"\n{title}")
        for i, (test, traceback) in enumerate(items, 1):
            print(f"\n{i}. {test}")
            print("-" * 60)
            print(traceback)


def run_specific_tests(test_patterns, verbosity=2, failfast=False):
    """Run specific test patterns, e.g. test_bn_layer.TestBNLayerForward"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for sub in ("unit", "integration"):
        sys.path.insert(0, str(REPO_ROOT / "tests" / sub))

    for pattern in test_patterns:
        try:
            suite.addTest(loader.loadTestsFromName(pattern))
        except (ImportError, AttributeError) as e:
            print(f"❌ Failed to load test pattern '{pattern}': {e}")

    if suite.countTestCases() == 0:
        print("❌ No tests found matching the specified patterns")
        return False

    result, duration = run_tests(suite, verbosity, failfast)
    success = print_test_summary(result, duration)
    print_failure_details(result)
    return success


def run_coverage_analysis(test_dir="tests"):
    """Run the suite under coverage and write text and HTML reports"""
    import coverage

    print("\n🔍 Running coverage analysis...")
    cov = coverage.Coverage(source=[str(REPO_ROOT / "bnorm")])
    cov.start()

    suite = discover_tests(test_dir)
    if suite:
        result, duration = run_tests(suite, verbosity=1)
        success = print_test_summary(result, duration)
    else:
        success = False

    cov.stop()
    cov.save()

    print("\n📊 Coverage Report:")
    cov.report()
    html_dir = REPO_ROOT / "tests" / "coverage_html"
    html_dir.mkdir(exist_ok=True)
    cov.html_report(directory=str(html_dir))
    print(f"📁 HTML coverage report generated in: {html_dir}")
    return success


def main():
    """Main test runner function"""
    parser = argparse.ArgumentParser(
        description="Run the bnorm test suite",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run all tests
  python tests/run_tests.py

  # Run specific test modules or cases
  python tests/run_tests.py -t test_gradient_check
  python tests/run_tests.py -t test_bn_layer.TestBNLayerForward

  # Run with coverage analysis
  python tests/run_tests.py --coverage
        """
    )

    parser.add_argument("-t", "--tests", nargs="+", help="Specific test patterns to run")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--failfast", action="store_true", help="Stop on first failure")
    parser.add_argument("--coverage", action="store_true", help="Run with coverage analysis")
    parser.add_argument("--unit", action="store_true", help="Run only unit tests")
    parser.add_argument("--integration", action="store_true", help="Run only integration tests")

    args = parser.parse_args()
    verbosity = 2 if args.verbose else 1

    print("🧪 bnorm Test Suite")
    print("=" * 50)

    if args.unit:
        test_dir = "tests/unit"
    elif args.integration:
        test_dir = "tests/integration"
    else:
        test_dir = "tests"

    if args.tests:
        success = run_specific_tests(args.tests, verbosity, args.failfast)
    elif args.coverage:
        success = run_coverage_analysis(test_dir)
    else:
        suite = discover_tests(test_dir)
        if suite is None:
            success = False
        else:
            result, duration = run_tests(suite, verbosity, args.failfast)
            success = print_test_summary(result, duration)
            print_failure_details(result)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
