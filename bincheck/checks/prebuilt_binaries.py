'''
* [x] Avoid Checked-in Binary Dependencies: Do not commit prebuilt executables, libraries,
      archives or bytecode into the repo. Use package managers or build them in CI.
      Implemented as a suffix check followed by a batched `file` content check over
      every git-tracked file, so a renamed binary is still caught.

Similar checks elsewhere:
  - Rust compiler: src/tools/tidy/src/bins.rs
  - OSSF Scorecard: checks/binary_artifact.go
'''
from __future__ import annotations
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from pathlib import Path
import enum
import logging
import re

from bincheck.checks.base import RepoCheck, Issue, IssueType, IssueList, Severity
from bincheck.file_types import FileTypeClassifier, FileCommandClassifier, CHUNK_SIZE, file_size, human_size
from bincheck.git_files import TrackedFile, list_tracked_files
from bincheck.messages import error, info, success, warning, rule

logger = logging.getLogger(__name__)

# --- Configuration ---

# TEMPORARY: these predate the check and should be built from source or
# downloaded at build time instead.
DEFAULT_ALLOWLIST: FrozenSet[str] = frozenset({
    "ui/desktop/src/platform/windows/bin/libgcc_s_seh-1.dll",
    "ui/desktop/src/platform/windows/bin/libstdc++-6.dll",
    "ui/desktop/src/platform/windows/bin/libwinpthread-1.dll",
    "ui/desktop/src/platform/windows/bin/uv.exe",
    "ui/desktop/src/platform/windows/bin/uvx.exe",
})

# Searched against `file` descriptions; any match marks the file as binary
DEFAULT_DENYLIST_PATTERNS: Tuple[str, ...] = (
    r"PE32.*executable",
    r"PE32.*DLL",
    r"MS-DOS executable",
    r"ELF.*executable",
    r"ELF.*shared object",
    r"Mach-O.*executable",
    r"Mach-O.*dynamically linked shared library",
    r"Mach-O.*bundle",
    r"Java archive data",
    r"compiled Java class",
    r"python.*byte-compiled",
    r"WebAssembly",
    r"current ar archive",
)

# Case sensitive, without the dot. `.bin` and upper-case suffixes such as
# `.EXE` are left to the content check.
BINARY_EXTENSIONS: FrozenSet[str] = frozenset({
    "exe", "dll", "so", "dylib", "a", "o", "app", "wasm",
    "jar", "class", "pyc", "pyd", "pyo", "lib",
})

ALLOWLIST_LOCATION = "bincheck/checks/prebuilt_binaries.py"

# --- Issue Types ---

E_PREBUILT_BINARY    = IssueType("cc5c0096-c97c-4c80-b02c-2890b0c9fdab", "Prebuilt binary is not allowed: {description}.")
W_ALLOWLISTED_BINARY = IssueType("b14d42ae-4aed-494f-aa4a-484db0cc049d", "Prebuilt binary is temporarily allowlisted: {description}.", Severity.WARNING)


class Classification(enum.Enum):
    NOT_CHECKED = "not-checked"
    ALLOWLISTED = "allowlisted"
    VIOLATION = "violation"


class DetectionPhase(enum.Enum):
    EXTENSION = "extension"
    CONTENT = "content"


@dataclass(frozen=True)
class BinaryPolicy:
    """
    What counts as a binary, and which paths are exempt. Built once, never
    mutated during a run.
    """
    allowlist: FrozenSet[str]
    denylist: Tuple[re.Pattern[str], ...]
    extensions: FrozenSet[str]

    @classmethod
    def build(cls,
              allowlist: Iterable[str] = DEFAULT_ALLOWLIST,
              denylist_patterns: Iterable[str] = DEFAULT_DENYLIST_PATTERNS,
              extensions: Iterable[str] = BINARY_EXTENSIONS) -> BinaryPolicy:
        return cls(
            allowlist=frozenset(allowlist),
            denylist=tuple(re.compile(p) for p in denylist_patterns),
            extensions=frozenset(e.lstrip('.') for e in extensions),
        )

    def is_allowlisted(self, path: str) -> bool:
        # Exact, case-sensitive match on the git path
        return path in self.allowlist

    def has_binary_extension(self, path: str) -> bool:
        _, dot, suffix = path.rpartition('.')
        return bool(dot) and suffix in self.extensions

    def matching_pattern(self, description: str) -> Optional[re.Pattern[str]]:
        for pattern in self.denylist:
            if pattern.search(description):
                return pattern
        return None

    def is_denied(self, description: str) -> bool:
        return self.matching_pattern(description) is not None

    def classify(self, path: str) -> Classification:
        if self.is_allowlisted(path):
            return Classification.ALLOWLISTED
        return Classification.VIOLATION


DEFAULT_POLICY = BinaryPolicy.build()


@dataclass
class Finding:
    path: str
    classification: Classification
    phase: DetectionPhase
    description: Optional[str] = None


@dataclass
class RunReport:
    """
    Outcome of one scan. Files with no finding are clean or weren't inspected.
    """
    tracked_count: int = 0
    candidate_count: int = 0
    deep_scanned_count: int = 0
    findings: Dict[str, Finding] = field(default_factory=dict)

    def record(self, path: str, classification: Classification, phase: DetectionPhase,
               description: Optional[str] = None) -> Finding:
        if path in self.findings:
            raise ValueError(f"File classified twice: {path}")
        finding = Finding(path, classification, phase, description)
        self.findings[path] = finding
        return finding

    def classification(self, path: str) -> Classification:
        finding = self.findings.get(path)
        return finding.classification if finding else Classification.NOT_CHECKED

    def _with(self, classification: Classification) -> List[Finding]:
        return sorted(
            (f for f in self.findings.values() if f.classification == classification),
            key=lambda f: f.path,
        )

    @property
    def allowlisted(self) -> List[Finding]:
        return self._with(Classification.ALLOWLISTED)

    @property
    def violations(self) -> List[Finding]:
        return self._with(Classification.VIOLATION)

    @property
    def extension_violations(self) -> int:
        return sum(
            1 for f in self.findings.values()
            if f.phase == DetectionPhase.EXTENSION and f.classification == Classification.VIOLATION
        )

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


def scan(files: Sequence[TrackedFile],
         classifier: FileTypeClassifier,
         policy: BinaryPolicy = DEFAULT_POLICY,
         chunk_size: int = CHUNK_SIZE) -> RunReport:
    """
    Classifies tracked files in two passes.

    The first pass decides on the path suffix alone. Only files it leaves
    undecided are handed to `classifier`, in batches of `chunk_size`, and
    flagged when the description matches a denylist pattern.
    """
    report = RunReport(tracked_count=len(files))
    candidates = list(dict.fromkeys(f.path for f in files if f.is_candidate))
    report.candidate_count = len(candidates)

    remaining: List[str] = []
    for path in candidates:
        if policy.has_binary_extension(path):
            report.record(path, policy.classify(path), DetectionPhase.EXTENSION)
        else:
            remaining.append(path)

    info(f"Found {report.extension_violations} files with suspicious extensions")

    report.deep_scanned_count = len(remaining)
    if remaining:
        info(f"Deep scanning {len(remaining)} additional files...")
        descriptions = classifier.classify_all(remaining, chunk_size)
        for path in remaining:
            description = descriptions[path]
            if not policy.is_denied(description):
                continue
            report.record(path, policy.classify(path), DetectionPhase.CONTENT, description)

    return report


def describe(report: RunReport, classifier: FileTypeClassifier, chunk_size: int = CHUNK_SIZE) -> None:
    """
    Fills in type descriptions for findings that were decided by suffix.
    """
    missing = sorted(f.path for f in report.findings.values() if f.description is None)
    if not missing:
        return
    descriptions = classifier.classify_all(missing, chunk_size)
    for path in missing:
        report.findings[path].description = descriptions[path]


def report_issues(report: RunReport, root: Path = Path('.')) -> IssueList:
    issues = IssueList()
    for finding in report.allowlisted:
        issues.append(W_ALLOWLISTED_BINARY.make(description=finding.description or "unknown").at(root / finding.path))
    for finding in report.violations:
        issues.append(E_PREBUILT_BINARY.make(description=finding.description or "unknown").at(root / finding.path))
    return issues


def _print_finding(label: str, finding: Finding, root: Path) -> None:
    indent = ' ' * (len(label) + 5)
    print(f"  [{label}] {finding.path}")
    print(f"{indent}{finding.description or 'unknown'}")
    size = file_size(root / finding.path)
    if size is not None:
        print(f"{indent}Size: {human_size(size)}")
    print()


def print_report(report: RunReport, root: Path = Path('.')) -> None:
    if report.allowlisted:
        print()
        warning("The following binaries are temporarily allowlisted:")
        print()
        for finding in report.allowlisted:
            _print_finding("ALLOWLISTED", finding, root)
        print("These files should be removed and replaced with build-time solutions.")
        print()

    if report.violations:
        print()
        error("PREBUILT BINARIES DETECTED!")
        print()
        print("The following prebuilt executables or binary files were found in the repository:")
        print()
        for finding in report.violations:
            _print_finding("VIOLATION", finding, root)

        rule()
        print()
        print("POLICY: Prebuilt binaries are not allowed in this repository")
        print()
        print("This is a security measure to prevent supply chain attacks.")
        print("All executables must be built from source in CI/CD pipelines.")
        print()
        print("If you need platform-specific binaries:")
        print("  1. Build them in the GitHub Actions workflow")
        print("  2. Use package managers (npm, cargo, apt, brew, etc.)")
        print("  3. Download from trusted sources during build time")
        print("  4. Add checksums/signatures verification")
        print()
        print("To remove these files:")
        for finding in report.violations:
            print(f"  git rm \"{finding.path}\"")
        print()
        print("If this is a false positive, add the file to the allowlist in:")
        print(f"  {ALLOWLIST_LOCATION}")
        print()
        rule()
        return

    success(f"No new prebuilt binaries detected ({len(report.allowlisted)} allowlisted)")


class PrebuiltBinaryCheck(RepoCheck):
    """
    Fails when a git-tracked file is a prebuilt executable, library, archive
    or bytecode file that isn't allowlisted.
    """

    def __init__(self,
                 policy: BinaryPolicy = DEFAULT_POLICY,
                 classifier: FileTypeClassifier | None = None,
                 chunk_size: int = CHUNK_SIZE):
        self.policy = policy
        self.classifier = classifier
        self.chunk_size = chunk_size
        self.last_report: RunReport | None = None

    def check(self, root: Path) -> List[Issue]:
        info("Checking for prebuilt executables and binaries...")
        info("Scanning git-tracked files...")
        files = list_tracked_files(root)
        info(f"Checking {len(files)} tracked files...")

        classifier = self.classifier or FileCommandClassifier(root)
        report = scan(files, classifier, self.policy, self.chunk_size)
        describe(report, classifier, self.chunk_size)
        logger.debug(
            f"{report.candidate_count} candidates, {len(report.allowlisted)} allowlisted, "
            f"{len(report.violations)} violations")

        self.last_report = report
        return report_issues(report, root).issues

    def report(self, root: Path, issues: List[Issue]) -> None:
        if self.last_report is None:
            super().report(root, issues)
            return
        print_report(self.last_report, root)
