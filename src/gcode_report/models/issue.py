"""Canonical issue and patch models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Severity(Enum):
    """Issue severity, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PatchAction(Enum):
    """Textual repair applied at a line."""

    INSERT = "insert"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True)
class Issue:
    """Normalized defect record.

    Note:
        When ``is_grouped`` is set, ``group_count`` always equals the number of
        member lines and is at least 1.

    Attributes:
        id: Issue identifier
        type: Issue type, e.g. "cold_extrusion"
        severity: Issue severity
        line_index: Representative 1-based source line
        layer: Layer number reported by the service
        section: Section reported by the service (BODY, INFILL, ...)
        title: Short title
        description: Detailed description
        impact: Expected effect on the print
        suggestion: Suggested fix
        is_grouped: True for a pre-aggregated cluster of occurrences
        group_count: Number of occurrences
        member_line_indexes: Source lines of every occurrence
        code: Offending G-code text, when provided
    """

    id: str
    type: str
    severity: Severity
    line_index: Optional[int] = None
    layer: Optional[int] = None
    section: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    impact: Optional[str] = None
    suggestion: Optional[str] = None
    is_grouped: bool = False
    group_count: int = 1
    member_line_indexes: Tuple[int, ...] = ()
    code: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the grouping invariant."""
        if self.is_grouped:
            if self.group_count != len(self.member_line_indexes):
                raise ValueError(
                    f"group_count must equal the number of member lines: "
                    f"{self.group_count} != {len(self.member_line_indexes)}"
                )
            if self.group_count < 1:
                raise ValueError("grouped issue must have at least one member line")
        elif self.group_count < 1:
            raise ValueError(f"group_count must be >= 1, got {self.group_count}")

    def covers_line(self, line_index: int) -> bool:
        """True if the issue points at ``line_index``."""
        return line_index == self.line_index or line_index in self.member_line_indexes


@dataclass(frozen=True)
class Patch:
    """Suggested textual repair.

    ``original_line`` and ``new_line`` are kept exactly as received, so they can
    be compared against the source file at ``line_index``.
    """

    id: str
    line_index: int
    action: PatchAction
    issue_id: Optional[str] = None
    original_line: Optional[str] = None
    new_line: Optional[str] = None
    reason: Optional[str] = None
    autofix_allowed: bool = False

    def __post_init__(self) -> None:
        """Validate line index."""
        if self.line_index < 1:
            raise ValueError(f"line_index must be >= 1, got {self.line_index}")
