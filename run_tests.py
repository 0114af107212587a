import argparse
import io
import json
import logging
import re
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sanitext import sanitize_html, strip_html

# Reset SIGPIPE so piping into `head` exits quietly. Guard for non-POSIX platforms.
try:  # pragma: no cover - platform dependent
    signal.signal(signal.SIGPIPE, signal.SIG_DFL)
except (AttributeError, OSError, RuntimeError):
    pass


@dataclass
class TestCase:
    name: str
    function: str
    input: str
    expected: str
    allowed_tags: Optional[List[str]] = None
    allowed_attributes: Optional[List[str]] = None


@dataclass
class TestResult:
    passed: bool
    case: TestCase
    actual_output: str
    debug_output: str = ""


def _natural_sort_key(text: str):
    return [int(chunk) if chunk.isdigit() else chunk.lower() for chunk in re.split("([0-9]+)", text)]


def run_case(case: TestCase) -> str:
    if case.function == "strip_html":
        return strip_html(case.input)
    if case.function == "sanitize_html":
        return sanitize_html(
            case.input,
            allowed_tags=case.allowed_tags,
            allowed_attributes=case.allowed_attributes,
        )
    raise ValueError(f"Unknown function in {case.name}: {case.function}")


class TestRunner:
    def __init__(self, test_dir: Path, config: dict):
        self.test_dir = test_dir
        self.config = config
        self.results = []
        self.file_results = {}

    def _load_file(self, path: Path) -> List[TestCase]:
        cases = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(cases, list):
            raise TypeError(f"{path.name} must contain a list")
        return [TestCase(**case) for case in cases]

    def _collect_test_files(self) -> List[Path]:
        files = list(self.test_dir.glob("*.json"))
        if self.config["filter_files"]:
            files = [f for f in files if any(text in f.name for text in self.config["filter_files"])]
        return sorted(files, key=lambda path: _natural_sort_key(path.name))

    def _should_run_test(self, filename: str, index: int, case: TestCase) -> bool:
        if self.config["test_specs"]:
            for spec in self.config["test_specs"]:
                if ":" not in spec:
                    continue
                spec_file, indices = spec.split(":")
                if filename == spec_file and str(index) in indices.split(","):
                    break
            else:
                return False

        if self.config["exclude_html"] and any(text in case.input for text in self.config["exclude_html"]):
            return False
        if self.config["filter_html"] and not any(text in case.input for text in self.config["filter_html"]):
            return False
        return True

    def run(self) -> tuple[int, int]:
        """Run all cases and return (passed, failed) counts"""
        passed = failed = 0

        for path in self._collect_test_files():
            statuses = []
            for i, case in enumerate(self._load_file(path)):
                if not self._should_run_test(path.name, i, case):
                    continue
                try:
                    result = self._run_single_test(case)
                except Exception:
                    print(f"\nError in test {path.name}:{i} ({case.name})")
                    print(f"Input:\n{case.input}\n")
                    raise
                self.results.append(result)
                if result.passed:
                    passed += 1
                    statuses.append(".")
                else:
                    failed += 1
                    statuses.append("x")
                    if self.config["verbosity"] >= 1 and not self.config["quiet"]:
                        print(f"\nTest failed in {path.name}:{i}")
                        print_test_result(result)
                if failed and self.config["fail_fast"]:
                    self.file_results[path.name] = statuses
                    return passed, failed
            if statuses:
                self.file_results[path.name] = statuses

        return passed, failed

    def _run_single_test(self, case: TestCase) -> TestResult:
        """Run one case; with -vv the sanitizer's debug log is captured too."""
        debug_output = ""
        if self.config["verbosity"] >= 2:
            stream = io.StringIO()
            handler = logging.StreamHandler(stream)
            logger = logging.getLogger("sanitext")
            previous_level = logger.level
            logger.addHandler(handler)
            logger.setLevel(logging.DEBUG)
            try:
                actual = run_case(case)
            finally:
                logger.removeHandler(handler)
                logger.setLevel(previous_level)
            debug_output = stream.getvalue()
        else:
            actual = run_case(case)
        return TestResult(actual == case.expected, case, actual, debug_output)


def print_test_result(result: TestResult):
    lines = [
        f"FAILED: {result.case.name} ({result.case.function})",
        f"=== INPUT ===\n{result.case.input!r}\n",
        f"=== EXPECTED ===\n{result.case.expected!r}\n",
        f"=== ACTUAL ===\n{result.actual_output!r}",
    ]
    if result.debug_output:
        lines.insert(2, f"=== DEBUG LOG ===\n{result.debug_output.rstrip()}\n")
    print("\n".join(lines))


def print_summary(passed: int, failed: int, file_results: dict, quiet: bool):
    total = passed + failed
    percentage = round(passed * 100 / total) if total else 0
    print(f"Tests passed: {passed}/{total} ({percentage}%)")
    if quiet:
        return
    for filename in sorted(file_results, key=_natural_sort_key):
        statuses = file_results[filename]
        file_passed = statuses.count(".")
        print(f"{filename}: {file_passed}/{len(statuses)} [{''.join(statuses)}]")


def parse_args() -> dict:
    parser = argparse.ArgumentParser(description="Run the JSON sanitize cases")
    parser.add_argument("-x", "--fail-fast", action="store_true", help="Break on first test failure")
    parser.add_argument(
        "--test-specs",
        type=str,
        nargs="+",
        default=None,
        help="Space-separated list of test specs in format: file:indices (e.g., cases.json:0,1,2)",
    )
    parser.add_argument(
        "--filter-files",
        type=str,
        nargs="+",
        help="Only run case files containing any of these strings (space-separated)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity: -v show failing cases; -vv add the sanitizer debug log for failures",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print the header line")
    parser.add_argument(
        "--exclude-html",
        type=str,
        help="Skip cases containing any of these strings in their input (comma-separated)",
    )
    parser.add_argument(
        "--filter-html",
        type=str,
        help="Only run cases containing any of these strings in their input (comma-separated)",
    )
    args = parser.parse_args()

    return {
        "fail_fast": args.fail_fast,
        "test_specs": args.test_specs or [],
        "filter_files": args.filter_files,
        "quiet": args.quiet,
        "exclude_html": args.exclude_html.split(",") if args.exclude_html else None,
        "filter_html": args.filter_html.split(",") if args.filter_html else None,
        "verbosity": args.verbose,
    }


def main():
    config = parse_args()
    test_dir = Path(__file__).parent / "tests" / "sanitize-cases"

    runner = TestRunner(test_dir, config)
    passed, failed = runner.run()
    print_summary(passed, failed, runner.file_results, config["quiet"])
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
