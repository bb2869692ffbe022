"""Tests for patch plan mapping."""

import pytest

from gcode_report.models.issue import Issue, PatchAction, Severity
from gcode_report.patches import PatchPlanMapper, map_resolution


@pytest.fixture
def issues():
    """One single issue at line 10 and one grouped issue at 20 and 30."""
    return (
        Issue(id="single", type="cold_extrusion", severity=Severity.HIGH, line_index=10),
        Issue(
            id="group",
            type="retraction",
            severity=Severity.LOW,
            line_index=20,
            is_grouped=True,
            group_count=2,
            member_line_indexes=(20, 30),
        ),
    )


class TestPatchPlanMapper:
    """Test PatchPlanMapper.map."""

    def test_replace_patch(self, issues):
        """Test a replace entry with verbatim text."""
        patches = PatchPlanMapper().map(
            {
                "patches": [
                    {
                        "id": "p1",
                        "line": 10,
                        "action": "modify",
                        "original": "M104 S170 ",
                        "modified": "M104 S210",
                        "reason": "raise temperature",
                    }
                ]
            },
            issues,
        )
        patch = patches[0]

        assert patch.id == "p1"
        assert patch.action is PatchAction.REPLACE
        assert patch.original_line == "M104 S170 "
        assert patch.new_line == "M104 S210"
        assert patch.issue_id == "single"
        assert patch.autofix_allowed

    def test_link_to_grouped_member_line(self, issues):
        """Test linking through a grouped issue's member lines."""
        patches = PatchPlanMapper().map([{"line_index": 30, "action": "delete"}], issues)

        assert patches[0].issue_id == "group"
        assert patches[0].action is PatchAction.DELETE
        assert patches[0].id == "patch-0"

    def test_explicit_issue_id_wins(self, issues):
        """Test that the plan's own issue link is kept."""
        patches = PatchPlanMapper().map(
            [{"line": 10, "action": "insert", "new_line": "M400", "issue_id": "other"}], issues
        )

        assert patches[0].issue_id == "other"
        assert patches[0].action is PatchAction.INSERT

    def test_ambiguous_line_left_unlinked(self):
        """Test that a line covered by two issues is not linked."""
        issues = (
            Issue(id="a", type="x", severity=Severity.LOW, line_index=5),
            Issue(id="b", type="y", severity=Severity.LOW, line_index=5),
        )
        patches = PatchPlanMapper().map([{"line": 5, "action": "delete"}], issues)

        assert patches[0].issue_id is None

    def test_autofix_defaults(self, issues):
        """Test autofix defaults on original text and explicit flags."""
        patches = PatchPlanMapper().map(
            [
                {"line": 11, "action": "insert", "new_line": "G4 P100"},
                {"line": 12, "action": "replace", "original": "G1", "new_line": "G0",
                 "autofix_allowed": False},
            ],
            issues,
        )

        assert not patches[0].autofix_allowed
        assert not patches[1].autofix_allowed

    def test_invalid_entries_skipped(self, issues):
        """Test that entries without a line or action are skipped."""
        patches = PatchPlanMapper().map(
            [
                {"action": "delete"},
                {"line": 3, "action": "explode"},
                "junk",
                {"line": 4, "type": "remove"},
            ],
            issues,
        )

        assert [patch.line_index for patch in patches] == [4]
        assert patches[0].id == "patch-0"

    def test_empty_plans(self, issues):
        """Test missing or empty plans."""
        assert PatchPlanMapper().map(None, issues) == ()
        assert PatchPlanMapper().map({"patches": None}, issues) == ()
        assert PatchPlanMapper().map({"patches": "bad"}, issues) == ()


class TestMapResolution:
    """Test map_resolution."""

    def test_single_code_fix(self, issues):
        """Test a single-issue resolution."""
        resolution = {
            "resolution": {
                "explanation": {"summary": "Nozzle too cold"},
                "solution": {
                    "code_fix": {"has_fix": True, "original": "M104 S170", "fixed": "M104 S210"}
                },
            }
        }
        patches = map_resolution(resolution, issues[0])

        assert len(patches) == 1
        patch = patches[0]
        assert patch.id == "single-fix-0"
        assert patch.line_index == 10
        assert patch.action is PatchAction.REPLACE
        assert patch.reason == "Nozzle too cold"
        assert patch.issue_id == "single"

    def test_grouped_code_fixes(self, issues):
        """Test per-line fixes of a grouped issue."""
        resolution = {
            "solution": {
                "code_fixes": [
                    {"line_number": 20, "original": "G1 E-8", "fixed": "G1 E-2"},
                    {"line_number": 30, "original": "G1 E-8", "fixed": ""},
                    {"line_number": 40, "has_fix": False, "original": "G1", "fixed": "G0"},
                ]
            }
        }
        patches = map_resolution(resolution, issues[1])

        assert [(p.line_index, p.action) for p in patches] == [
            (20, PatchAction.REPLACE),
            (30, PatchAction.DELETE),
        ]
        assert patches[1].new_line is None
        assert patches[1].id == "group-fix-1"

    def test_insert_fix(self, issues):
        """Test that a fix without original text is an insert."""
        patches = map_resolution({"code_fix": {"fixed": "M400"}}, issues[0])

        assert patches[0].action is PatchAction.INSERT
        assert not patches[0].autofix_allowed

    def test_no_line_available(self):
        """Test that fixes without any line are skipped."""
        issue = Issue(id="x", type="x", severity=Severity.LOW)

        assert map_resolution({"code_fix": {"original": "G1", "fixed": "G0"}}, issue) == ()
