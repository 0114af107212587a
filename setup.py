"""
Build script for sanitext with optional mypyc compilation.

Usage:
    # Pure Python build (default)
    python -m build

    # Compiled with mypyc
    SANITEXT_USE_MYPYC=1 pip install .
"""

import os
import sys
from pathlib import Path

from setuptools import find_packages, setup

# Determine if we should use mypyc
USE_MYPYC = os.environ.get("SANITEXT_USE_MYPYC", "0") == "1"

# Modules on the per-character hot path.
# Note: sanitize.py is excluded because mypyc does not support slotted
# frozen dataclasses with __post_init__ normalization.
MYPYC_MODULES = [
    "src/sanitext/tokenizer.py",
    "src/sanitext/entities.py",
    "src/sanitext/strip.py",
]


def build_with_mypyc() -> list:
    """Build extension modules using mypyc."""
    try:
        from mypyc.build import mypycify
    except ImportError:
        print(
            "ERROR: mypyc is not installed. Install with: pip install mypy",
            file=sys.stderr,
        )
        print("Or install with mypyc support: pip install sanitext[mypyc]", file=sys.stderr)
        sys.exit(1)

    for module_path in MYPYC_MODULES:
        if not Path(module_path).exists():
            print(f"ERROR: Module not found: {module_path}", file=sys.stderr)
            sys.exit(1)

    print(f"Compiling {len(MYPYC_MODULES)} sanitext modules with mypyc")
    for module in MYPYC_MODULES:
        print(f"  - {module}")

    opt_level = os.environ.get("MYPYC_OPT_LEVEL", "3")
    debug_level = os.environ.get("MYPYC_DEBUG_LEVEL", "0")

    return mypycify(
        MYPYC_MODULES,
        opt_level=opt_level,
        debug_level=debug_level,
        separate=False,
        multi_file=False,
    )


ext_modules = build_with_mypyc() if USE_MYPYC else []

setup(
    name="sanitext",
    version="0.1.0",
    description="Sanitize untrusted text: strip or allow-list HTML and normalize names and paths",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[],
    extras_require={
        "mypyc": ["mypy"],
        "test": ["pytest"],
    },
    ext_modules=ext_modules,
)
