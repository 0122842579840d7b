from __future__ import annotations
from typing import Callable, Dict, List
from pathlib import Path
from argparse import ArgumentParser
import sys

from bincheck.checks.base import RepoCheck, IssueList
from bincheck.checks.prebuilt_binaries import PrebuiltBinaryCheck


def available_checks() -> Dict[str, Callable[[], RepoCheck]]:
    return {
        "binaries": PrebuiltBinaryCheck,
    }


def check_main(path: str = '.', enabled_checks: List[str] | None = None) -> int:
    """
    Runs the enabled checks against the repository at `path` and returns the
    process exit code: 1 if any check reported an error, 0 otherwise.
    """
    all_checks = available_checks()
    for check_name in enabled_checks or []:
        if check_name not in all_checks:
            raise ValueError(f"Unknown check: {check_name}")
    check_set = set(enabled_checks) if enabled_checks else set(all_checks.keys())

    root = Path(path)
    if not root.exists():
        raise ValueError(f"Path does not exist: {root}")

    all_issues = IssueList()
    for name, make_check in all_checks.items():
        if name not in check_set:
            continue
        check = make_check()
        issues = check.check(root)
        check.report(root, issues)
        all_issues.extend(issues)

    return 1 if all_issues.has_errors else 0


if __name__ == "__main__":
    parser = ArgumentParser(description="Run repository checks.")
    parser.add_argument("path", type=str, nargs='?', default='.', help="Repository to check.")
    parser.add_argument("--checks", nargs='+', default=[], help="List of checks to run.")

    args = parser.parse_args()

    sys.exit(check_main(args.path, args.checks or None))
