"""Normalization of service issue payloads into canonical Issue records."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gcode_report.fields import (
    ISSUE_DESCRIPTION_FIELDS,
    ISSUE_ID_FIELDS,
    ISSUE_LINE_FIELDS,
    ISSUE_MEMBER_FIELDS,
    ISSUE_SEVERITY_FIELDS,
    ISSUE_TITLE_FIELDS,
    ISSUE_TYPE_FIELDS,
    resolve,
    to_bool,
    to_int,
    to_label,
    to_line_index,
    to_line_indexes,
    to_verbatim,
)
from gcode_report.models.issue import Issue, Severity

logger = logging.getLogger(__name__)

SEVERITY_ALIASES = {
    "critical": Severity.CRITICAL,
    "high": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "warning": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.LOW,
    "none": Severity.LOW,
}


def normalize_severity(value: Optional[str]) -> Severity:
    """Map a severity label onto Severity; unknown or missing labels are MEDIUM."""
    if value is None:
        return Severity.MEDIUM
    return SEVERITY_ALIASES.get(value.strip().lower(), Severity.MEDIUM)


def _member_lines(entry: Dict[str, Any]) -> Tuple[int, ...]:
    """Occurrence lines of a grouped issue: ``lines``, ``affected_lines``, then ``all_issues``."""
    members = resolve(entry, ISSUE_MEMBER_FIELDS, to_line_indexes)
    if members:
        return members
    occurrences = entry.get("all_issues")
    if not isinstance(occurrences, list):
        return ()
    lines: List[int] = []
    for occurrence in occurrences:
        if not isinstance(occurrence, dict):
            continue
        line = resolve(occurrence, ISSUE_LINE_FIELDS, to_line_index)
        if line is not None and line not in lines:
            lines.append(line)
    return tuple(lines)


class IssueNormalizer:
    """Turn raw ``issues_found`` entries into Issue records.

    Entries are kept only when they flag an actual issue (``has_issue``) or a
    pre-aggregated group (``is_grouped``). Everything else, including entries
    that are not objects, is dropped and logged.

    Example:
        >>> issues = IssueNormalizer().normalize([
        ...     {"has_issue": True, "issue_type": "cold_extrusion",
        ...      "severity": "high", "event_line_index": "42"},
        ...     {"has_issue": False},
        ... ])
        >>> [(issue.type, issue.line_index) for issue in issues]
        [('cold_extrusion', 42)]
    """

    def normalize(self, payloads: Optional[Sequence[Any]]) -> Tuple[Issue, ...]:
        """Normalize a list of issue payloads.

        Args:
            payloads: Raw entries as returned by the service (None is treated as empty)

        Returns:
            Issues in payload order
        """
        if payloads is None:
            return ()
        if not isinstance(payloads, (list, tuple)):
            logger.warning("Expected a list of issues, got %s", type(payloads).__name__)
            return ()

        issues: List[Issue] = []
        for position, entry in enumerate(payloads):
            if not isinstance(entry, dict):
                logger.warning("Skipping issue entry %d: not an object (%r)", position, entry)
                continue
            if not (to_bool(entry.get("has_issue")) or to_bool(entry.get("is_grouped"))):
                logger.debug("Skipping issue entry %d: no issue flagged", position)
                continue
            issues.append(self._build(entry, fallback_id=f"issue-{len(issues)}"))
        return tuple(issues)

    def _build(self, entry: Dict[str, Any], fallback_id: str) -> Issue:
        issue_id = resolve(entry, ISSUE_ID_FIELDS, to_label) or fallback_id
        line = resolve(entry, ISSUE_LINE_FIELDS, to_line_index)

        grouped = bool(to_bool(entry.get("is_grouped")))
        members: Tuple[int, ...] = ()
        if grouped:
            members = _member_lines(entry)
            if not members:
                logger.warning("Issue %s is grouped but lists no lines; treating as single", issue_id)
                grouped = False
            elif line is None:
                line = members[0]

        return Issue(
            id=issue_id,
            type=resolve(entry, ISSUE_TYPE_FIELDS, to_label) or "other",
            severity=normalize_severity(resolve(entry, ISSUE_SEVERITY_FIELDS, to_label)),
            line_index=line,
            layer=resolve(entry, ("layer",), to_int),
            section=resolve(entry, ("section",), to_label),
            title=resolve(entry, ISSUE_TITLE_FIELDS, to_label),
            description=resolve(entry, ISSUE_DESCRIPTION_FIELDS, to_label),
            impact=resolve(entry, ("impact",), to_label),
            suggestion=resolve(entry, ("suggestion",), to_label),
            is_grouped=grouped,
            group_count=len(members) if grouped else 1,
            member_line_indexes=members if grouped else (),
            code=resolve(entry, ("code",), to_verbatim),
        )


@dataclass(frozen=True)
class IssueStatistic:
    """Share of one issue type among all issues."""

    type: str
    count: int
    percentage: int


def issue_statistics(issues: Sequence[Issue]) -> Tuple[IssueStatistic, ...]:
    """Count and rounded percentage per issue type, most frequent first."""
    total = len(issues)
    if total == 0:
        return ()
    counts: Dict[str, int] = {}
    for issue in issues:
        counts[issue.type] = counts.get(issue.type, 0) + 1
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(
        IssueStatistic(type=issue_type, count=count, percentage=round(count * 100 / total))
        for issue_type, count in ordered
    )
