from __future__ import annotations

import json
import unittest
from pathlib import Path
from typing import Any

from sanitext import sanitize_html, strip_html

_CASES_DIR = Path(__file__).with_name("sanitize-cases")


def _run_case(case: dict[str, Any]) -> str:
    function = case["function"]
    if function == "strip_html":
        return strip_html(case["input"])
    if function == "sanitize_html":
        return sanitize_html(
            case["input"],
            allowed_tags=case.get("allowed_tags"),
            allowed_attributes=case.get("allowed_attributes"),
        )
    raise ValueError(f"Unknown function in {case['name']}: {function}")


class TestSanitizeIntegration(unittest.TestCase):
    def test_sanitize_cases(self) -> None:
        cases_path = _CASES_DIR / "cases.json"
        cases = json.loads(cases_path.read_text(encoding="utf-8"))
        if not isinstance(cases, list):
            raise TypeError("cases.json must contain a list")

        for case in cases:
            actual = _run_case(case)
            if actual != case["expected"]:
                self.fail(
                    "\n".join(
                        [
                            f"Case: {case['name']}",
                            f"Input: {case['input']!r}",
                            f"Expected: {case['expected']!r}",
                            f"Actual:   {actual!r}",
                        ]
                    )
                )


if __name__ == "__main__":
    unittest.main()
