"""
Tests for the draft flag conclusion lint
"""

import pytest

from lexgate.schemas.draft import Flag, FlagSeverity
from lexgate.services.flag_policy import enforce_flag_policy, find_conclusion_phrases, lint_flags
from lexgate.utils.error_handling import ErrorCode, FlagPolicyException


def flag(message: str, action: str = "Confirm with the client", kind: str = "missing_info") -> Flag:
    return Flag(kind=kind, severity=FlagSeverity.WARNING, message=message, action=action)


class TestFindConclusionPhrases:

    def test_case_insensitive_match(self):
        assert find_conclusion_phrases("Discharge Will Be Denied for gambling debts") == ["will be denied"]

    def test_japanese_phrase(self):
        assert "免責不許可" in find_conclusion_phrases("浪費があるため免責不許可の可能性")

    def test_clean_text(self):
        assert find_conclusion_phrases("Confirm the date of the last repayment") == []

    def test_custom_phrases(self):
        assert find_conclusion_phrases("this case is hopeless", ["hopeless"]) == ["hopeless"]
        assert find_conclusion_phrases("this case is hopeless", []) == []

    def test_mixed_case_custom_phrases(self):
        assert find_conclusion_phrases("Discharge will be denied", ["Will Be Denied"]) == ["Will Be Denied"]


class TestLintFlags:

    def test_next_action_flags_pass(self):
        flags = [
            flag("Last repayment date is missing"),
            flag("Income differs from the pay slip", action="Check the pay slip"),
        ]
        assert lint_flags(flags) == []
        enforce_flag_policy(flags)

    def test_conclusion_in_message(self):
        violations = lint_flags([flag("ok"), flag("Discharge will be denied", kind="gambling")])
        assert violations == [{"index": 1, "kind": "gambling", "phrases": ["will be denied"]}]

    def test_conclusion_in_action(self):
        violations = lint_flags([flag("Gambling history found", action="Tell the client bankruptcy is appropriate")])
        assert violations[0]["phrases"] == ["bankruptcy is appropriate"]

    def test_mixed_case_phrase_list(self):
        violations = lint_flags([flag("Discharge will be denied")], ["Will Be Denied"])
        assert violations == [{"index": 0, "kind": "missing_info", "phrases": ["Will Be Denied"]}]

    def test_phrase_reported_once(self):
        violations = lint_flags([flag("will be denied", action="explain it will be denied")])
        assert violations[0]["phrases"] == ["will be denied"]

    def test_enforce_raises(self):
        with pytest.raises(FlagPolicyException) as exc_info:
            enforce_flag_policy([flag("Discharge is guaranteed")])
        assert exc_info.value.code == ErrorCode.FLAG_POLICY_VIOLATION
        assert exc_info.value.status_code == 400
        assert exc_info.value.details["violations"][0]["index"] == 0
