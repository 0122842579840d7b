import abc
from typing import Any, List, Mapping
from dataclasses import dataclass, field
from pathlib import Path
import enum
import uuid

from bincheck.messages import error, info, warning


@dataclass(frozen=True)
class FileLocation:
    path: Path

    def __str__(self) -> str:
        return self.path.as_posix()


class Severity(enum.Enum):
    """
    Severity levels for checks.
    """
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class IssueType:
    """
    Represents a type of issue.
    """
    id: str
    message: str
    severity: Severity = Severity.ERROR

    def __post_init__(self):
        # Verify that the ID is a valid UUID
        if not isinstance(self.id, str):
            raise ValueError(f"Invalid ID: {self.id}")
        try:
            uuid.UUID(self.id)
        except ValueError:
            raise ValueError(f"Invalid UUID: {self.id}")

    def make(self, **kwargs) -> 'Issue':
        """
        Creates an Issue of this type.
        """
        return Issue(self, data=kwargs)

    def at(self, path: Path) -> 'Issue':
        """
        Returns an Issue with the specified path.
        """
        return Issue(self).at(path)


@dataclass
class Issue:
    """
    Represents an issue found during a check.
    """
    issue_type: IssueType
    data: Mapping[str, Any] | None = None
    location: FileLocation | None = None

    @property
    def severity(self) -> Severity:
        return self.issue_type.severity

    @property
    def message(self) -> str:
        return self.issue_type.message.format(**(self.data or {}))

    def at(self, path: Path) -> 'Issue':
        """
        Returns an Issue with the specified path.
        """
        if self.location is not None and self.location.path != path:
            raise ValueError("Cannot change the path of an existing issue.")
        self.location = FileLocation(path)
        return self

    def __str__(self) -> str:
        if self.location is None:
            return f"> {self.message}"
        return f"{self.location} > {self.message}"


@dataclass
class IssueList:
    """
    Represents a list of issues found during a check.
    """
    issues: List[Issue] = field(default_factory=list)

    def append(self, issue: Issue) -> None:
        """
        Adds an issue to the list, skipping exact repeats.
        """
        if self.issues and self.issues[-1] == issue:
            return
        self.issues.append(issue)

    def __iter__(self):
        return iter(self.issues)

    def __len__(self) -> int:
        return len(self.issues)

    def extend(self, issues: List[Issue] | 'IssueList') -> None:
        """
        Adds multiple issues to the list.
        """
        for issue in issues:
            self.append(issue)

    def with_severity(self, severity: Severity) -> List[Issue]:
        return [issue for issue in self.issues if issue.severity == severity]

    @property
    def has_errors(self) -> bool:
        return any(
            issue.severity in (Severity.ERROR, Severity.CRITICAL)
            for issue in self.issues
        )


class RepoCheck(abc.ABC):
    @abc.abstractmethod
    def check(self, root: Path) -> List[Issue]:
        raise NotImplementedError()

    def report(self, root: Path, issues: List[Issue]) -> None:
        """
        Prints the issues found by the last `check` call.
        """
        for issue in issues:
            if issue.severity in (Severity.ERROR, Severity.CRITICAL):
                error(str(issue))
            elif issue.severity == Severity.WARNING:
                warning(str(issue))
            else:
                info(str(issue))
