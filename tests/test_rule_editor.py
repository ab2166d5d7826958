"""
Tests for rule set editing and its contract with the match engine.
"""

import pytest

from config_manager import ConfigManager
from matcher import evaluate
from rule_editor import RuleEditError, RuleSetEditor
from watchlist_types import (
    CandidateIdentity,
    MatchOperator,
    RuleParameter,
    WatchlistEntry,
)


@pytest.fixture
def rule_set():
    return ConfigManager.create().rule_set()


@pytest.fixture
def editor(rule_set):
    return RuleSetEditor(rule_set)


class TestGroups:

    def test_add_group_names_by_position(self, editor, rule_set):
        group = editor.add_group()
        assert group.name == "Rule Group 2"
        assert group.rules == []
        assert rule_set[-1] is group

    def test_remove_group(self, editor, rule_set):
        group = editor.add_group()
        editor.remove_group(group.id)
        assert [g.id for g in rule_set] == ["default-group"]

    def test_default_group_is_protected(self, editor):
        with pytest.raises(RuleEditError) as exc_info:
            editor.remove_group("default-group")
        assert exc_info.value.code == "DEFAULT_GROUP_PROTECTED"

    def test_unknown_group(self, editor):
        with pytest.raises(RuleEditError) as exc_info:
            editor.add_rule("nope")
        assert exc_info.value.code == "GROUP_NOT_FOUND"


class TestRules:

    def test_available_parameters_exclude_used(self, editor):
        assert editor.available_parameters("default-group") == [
            RuleParameter.EMAIL, RuleParameter.PHONE
        ]

    def test_add_rule_uses_first_available_parameter(self, editor):
        rule = editor.add_rule("default-group")
        assert rule.parameter == RuleParameter.EMAIL
        assert rule.operator == MatchOperator.EXACT

    def test_add_rule_when_all_parameters_used(self, editor):
        editor.add_rule("default-group")
        editor.add_rule("default-group")
        with pytest.raises(RuleEditError) as exc_info:
            editor.add_rule("default-group")
        assert exc_info.value.code == "NO_PARAMETER_AVAILABLE"

    def test_default_group_keeps_one_rule(self, editor, rule_set):
        editor.remove_rule("default-group", "rule-1")
        with pytest.raises(RuleEditError) as exc_info:
            editor.remove_rule("default-group", "rule-2")
        assert exc_info.value.code == "DEFAULT_GROUP_REQUIRES_RULE"
        assert len(rule_set[0].rules) == 1

    def test_other_groups_may_be_emptied(self, editor):
        group = editor.add_group()
        rule = editor.add_rule(group.id)
        editor.remove_rule(group.id, rule.id)
        assert group.rules == []

    def test_remove_unknown_rule(self, editor):
        with pytest.raises(RuleEditError) as exc_info:
            editor.remove_rule("default-group", "rule-99")
        assert exc_info.value.code == "RULE_NOT_FOUND"

    def test_update_rule(self, editor):
        rule = editor.update_rule("default-group", "rule-1",
                                  parameter=RuleParameter.EMAIL,
                                  operator=MatchOperator.CONTAINS, value="corp")
        assert rule.parameter == RuleParameter.EMAIL
        assert rule.operator == MatchOperator.CONTAINS
        assert rule.value == "corp"

    def test_update_rule_keeps_own_parameter(self, editor):
        rule = editor.update_rule("default-group", "rule-1", parameter=RuleParameter.FIRST_NAME)
        assert rule.parameter == RuleParameter.FIRST_NAME

    def test_update_rule_rejects_duplicate_parameter(self, editor):
        with pytest.raises(RuleEditError) as exc_info:
            editor.update_rule("default-group", "rule-1", parameter=RuleParameter.LAST_NAME)
        assert exc_info.value.code == "DUPLICATE_PARAMETER"

    def test_update_rule_rejects_unknown_parameter(self, editor, rule_set):
        with pytest.raises(RuleEditError) as exc_info:
            editor.update_rule("default-group", "rule-1", parameter="passport")
        assert exc_info.value.code == "INVALID_PARAMETER"
        assert rule_set[0].rules[0].parameter == RuleParameter.FIRST_NAME

    def test_update_rule_rejects_unknown_operator(self, editor, rule_set):
        with pytest.raises(RuleEditError) as exc_info:
            editor.update_rule("default-group", "rule-1",
                               parameter=RuleParameter.EMAIL, operator="fuzzy")
        assert exc_info.value.code == "INVALID_OPERATOR"
        rule = rule_set[0].rules[0]
        assert rule.parameter == RuleParameter.FIRST_NAME
        assert rule.operator == MatchOperator.PARTIAL

    def test_update_rule_accepts_plain_strings(self, editor):
        rule = editor.update_rule("default-group", "rule-2", parameter="phone", operator="contains")
        assert rule.parameter is RuleParameter.PHONE
        assert rule.operator is MatchOperator.CONTAINS

    def test_snapshot_is_independent(self, editor, rule_set):
        snapshot = editor.snapshot()
        editor.add_group()
        assert len(snapshot) == 1
        assert len(rule_set) == 2


class TestEditsReachTheEngine:

    def test_new_group_takes_effect_on_next_evaluation(self, editor, rule_set):
        entry = WatchlistEntry(id="1", first_name="Willy", last_name="Wonka",
                               primary_email="willy.wonka@chocolate.com")
        candidate = CandidateIdentity(first_name="Charlie", last_name="Bucket",
                                      email="WILLY.WONKA@chocolate.com")
        assert evaluate(candidate, rule_set, [entry]).is_match is False

        group = editor.add_group()
        assert evaluate(candidate, rule_set, [entry]).is_match is False

        rule = editor.add_rule(group.id)
        editor.update_rule(group.id, rule.id, parameter=RuleParameter.EMAIL)
        assert evaluate(candidate, rule_set, [entry]).is_match is True
