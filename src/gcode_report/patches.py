"""Mapping of service patch plans and issue resolutions into Patch records."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from gcode_report.fields import (
    PATCH_ACTION_FIELDS,
    PATCH_AUTOFIX_FIELDS,
    PATCH_ID_FIELDS,
    PATCH_ISSUE_FIELDS,
    PATCH_LINE_FIELDS,
    PATCH_NEW_FIELDS,
    PATCH_ORIGINAL_FIELDS,
    PATCH_REASON_FIELDS,
    resolve,
    to_bool,
    to_label,
    to_line_index,
    to_verbatim,
)
from gcode_report.models.issue import Issue, Patch, PatchAction

logger = logging.getLogger(__name__)

ACTION_ALIASES = {
    "insert": PatchAction.INSERT,
    "add": PatchAction.INSERT,
    "replace": PatchAction.REPLACE,
    "modify": PatchAction.REPLACE,
    "delete": PatchAction.DELETE,
    "remove": PatchAction.DELETE,
}


def _plan_entries(patch_plan: Any) -> Sequence[Any]:
    if patch_plan is None:
        return ()
    if isinstance(patch_plan, Mapping):
        entries = patch_plan.get("patches") or ()
    else:
        entries = patch_plan
    if not isinstance(entries, (list, tuple)):
        logger.warning("Expected a list of patches, got %s", type(entries).__name__)
        return ()
    return entries


def _linked_issue(line: int, issues: Sequence[Issue]) -> Optional[str]:
    """Id of the only issue pointing at ``line``, if exactly one does."""
    covering = [issue.id for issue in issues if issue.covers_line(line)]
    if len(covering) == 1:
        return covering[0]
    if covering:
        logger.debug("Line %d matches %d issues; leaving patch unlinked", line, len(covering))
    return None


class PatchPlanMapper:
    """Turn a service ``patch_plan`` into Patch records linked to issues.

    Original and replacement text are kept byte for byte so they can be
    compared against the source line.
    """

    def map(self, patch_plan: Any, issues: Sequence[Issue] = ()) -> Tuple[Patch, ...]:
        """Map a patch plan.

        Args:
            patch_plan: ``{"patches": [...]}`` or a bare list of patch entries
            issues: Normalized issues used to link patches by line

        Returns:
            Patches in plan order. Entries without a line or with an unknown
            action are skipped.
        """
        patches: List[Patch] = []
        for position, entry in enumerate(_plan_entries(patch_plan)):
            if not isinstance(entry, dict):
                logger.warning("Skipping patch entry %d: not an object (%r)", position, entry)
                continue
            line = resolve(entry, PATCH_LINE_FIELDS, to_line_index)
            if line is None:
                logger.warning("Skipping patch entry %d: no line", position)
                continue
            label = resolve(entry, PATCH_ACTION_FIELDS, to_label)
            action = ACTION_ALIASES.get(label.lower()) if label else None
            if action is None:
                logger.warning("Skipping patch entry %d: unknown action %r", position, label)
                continue

            original = resolve(entry, PATCH_ORIGINAL_FIELDS, to_verbatim)
            autofix = resolve(entry, PATCH_AUTOFIX_FIELDS, to_bool)
            issue_id = resolve(entry, PATCH_ISSUE_FIELDS, to_label)
            patches.append(
                Patch(
                    id=resolve(entry, PATCH_ID_FIELDS, to_label) or f"patch-{len(patches)}",
                    line_index=line,
                    action=action,
                    issue_id=issue_id if issue_id is not None else _linked_issue(line, issues),
                    original_line=original,
                    new_line=resolve(entry, PATCH_NEW_FIELDS, to_verbatim),
                    reason=resolve(entry, PATCH_REASON_FIELDS, to_label),
                    autofix_allowed=autofix if autofix is not None else original is not None,
                )
            )
        return tuple(patches)


def _code_fixes(resolution: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """``code_fixes`` (grouped issues) or ``code_fix`` (single issue) of a resolution."""
    solution: Mapping[str, Any] = resolution
    inner = resolution.get("resolution")
    if isinstance(inner, Mapping):
        solution = inner
    if isinstance(solution.get("solution"), Mapping):
        solution = solution["solution"]

    fixes = solution.get("code_fixes")
    if isinstance(fixes, list) and fixes:
        return [fix for fix in fixes if isinstance(fix, dict)]
    fix = solution.get("code_fix")
    return [fix] if isinstance(fix, dict) else []


def map_resolution(resolution: Mapping[str, Any], issue: Issue) -> Tuple[Patch, ...]:
    """Map an issue-resolution answer into patches for ``issue``.

    Each code fix carries ``original`` and ``fixed`` text and, for grouped
    issues, its own ``line_number``. Fixes flagged ``has_fix: false`` or with
    no resolvable line are skipped.

    Args:
        resolution: Resolution payload (full response, ``resolution`` or ``solution`` object)
        issue: Issue the resolution answers

    Returns:
        Patches linked to ``issue``
    """
    explanation = resolution.get("resolution", {}) if isinstance(resolution, Mapping) else {}
    reason = None
    if isinstance(explanation, Mapping) and isinstance(explanation.get("explanation"), Mapping):
        reason = to_label(explanation["explanation"].get("summary"))

    patches: List[Patch] = []
    for fix in _code_fixes(resolution):
        if to_bool(fix.get("has_fix")) is False:
            continue
        line = to_line_index(fix.get("line_number")) or issue.line_index
        if line is None:
            logger.warning("Skipping code fix for issue %s: no line", issue.id)
            continue
        original = to_verbatim(fix.get("original"))
        fixed = to_verbatim(fix.get("fixed"))
        if original is None and fixed is None:
            continue
        if fixed is None or fixed == "":
            action = PatchAction.DELETE
        elif original is None:
            action = PatchAction.INSERT
        else:
            action = PatchAction.REPLACE
        patches.append(
            Patch(
                id=f"{issue.id}-fix-{len(patches)}",
                line_index=line,
                action=action,
                issue_id=issue.id,
                original_line=original,
                new_line=fixed if action is not PatchAction.DELETE else None,
                reason=reason,
                autofix_allowed=original is not None,
            )
        )
    return tuple(patches)
