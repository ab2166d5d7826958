"""
Watchlist rule set editing

Operations behind the rules screen of the watchlist configuration. The
editor mutates the rule set list it was given, so a matcher handed the
same list picks up every edit on its next evaluation.

Policies enforced here rather than in the engine:
- the default group cannot be removed and keeps at least one rule
- a parameter appears at most once within a group
"""

import copy
import logging
import uuid
from typing import List, Optional

from config_manager import DEFAULT_GROUP_ID
from watchlist_types import (
    MatchOperator,
    RuleParameter,
    RuleSet,
    WatchlistRule,
    WatchlistRuleGroup,
)

logger = logging.getLogger(__name__)


class RuleEditError(ValueError):
    """Raised when a rule set edit is not allowed

    Attributes:
        code: Error code for programmatic handling
    """

    def __init__(self, message: str, code: str):
        self.code = code
        super().__init__(message)


class RuleSetEditor:
    """Edits an ordered list of rule groups in place"""

    def __init__(self, rule_set: RuleSet, default_group_id: str = DEFAULT_GROUP_ID):
        self.rule_set = rule_set
        self.default_group_id = default_group_id

    def snapshot(self) -> RuleSet:
        return copy.deepcopy(self.rule_set)

    def get_group(self, group_id: str) -> WatchlistRuleGroup:
        for group in self.rule_set:
            if group.id == group_id:
                return group
        raise RuleEditError(f"Rule group not found: {group_id}", code="GROUP_NOT_FOUND")

    def _get_rule(self, group: WatchlistRuleGroup, rule_id: str) -> WatchlistRule:
        for rule in group.rules:
            if rule.id == rule_id:
                return rule
        raise RuleEditError(f"Rule not found: {rule_id}", code="RULE_NOT_FOUND")

    def add_group(self, name: Optional[str] = None) -> WatchlistRuleGroup:
        group = WatchlistRuleGroup(
            id=f"group-{uuid.uuid4().hex[:12]}",
            name=name or f"Rule Group {len(self.rule_set) + 1}",
            rules=[],
        )
        self.rule_set.append(group)
        logger.info(f"Added rule group {group.id}")
        return group

    def remove_group(self, group_id: str) -> None:
        if group_id == self.default_group_id:
            raise RuleEditError("The default rule group cannot be removed",
                                code="DEFAULT_GROUP_PROTECTED")
        group = self.get_group(group_id)
        self.rule_set.remove(group)
        logger.info(f"Removed rule group {group_id}")

    def available_parameters(self, group_id: str,
                             exclude_rule_id: Optional[str] = None) -> List[RuleParameter]:
        """Parameters not yet used by a rule of the group.

        ``exclude_rule_id`` leaves that rule's own parameter selectable, as
        when editing the rule.
        """
        group = self.get_group(group_id)
        used = {rule.parameter for rule in group.rules if rule.id != exclude_rule_id}
        return [parameter for parameter in RuleParameter if parameter not in used]

    def add_rule(self, group_id: str) -> WatchlistRule:
        available = self.available_parameters(group_id)
        if not available:
            raise RuleEditError("Every parameter is already used in this group",
                                code="NO_PARAMETER_AVAILABLE")
        rule = WatchlistRule(
            id=f"rule-{uuid.uuid4().hex[:12]}",
            parameter=available[0],
            operator=MatchOperator.EXACT,
        )
        self.get_group(group_id).rules.append(rule)
        return rule

    def remove_rule(self, group_id: str, rule_id: str) -> None:
        group = self.get_group(group_id)
        rule = self._get_rule(group, rule_id)
        if group_id == self.default_group_id and len(group.rules) <= 1:
            raise RuleEditError("The default rule group must keep at least one rule",
                                code="DEFAULT_GROUP_REQUIRES_RULE")
        group.rules.remove(rule)

    def update_rule(self, group_id: str, rule_id: str,
                    parameter: Optional[RuleParameter] = None,
                    operator: Optional[MatchOperator] = None,
                    value: Optional[str] = None) -> WatchlistRule:
        """Change a rule in place; nothing is changed if any argument is rejected"""
        group = self.get_group(group_id)
        rule = self._get_rule(group, rule_id)

        new_parameter = rule.parameter
        if parameter is not None:
            try:
                new_parameter = RuleParameter(parameter)
            except ValueError:
                raise RuleEditError(f"Unknown rule parameter: {parameter}",
                                    code="INVALID_PARAMETER") from None
            if (new_parameter != rule.parameter and new_parameter
                    not in self.available_parameters(group_id, exclude_rule_id=rule_id)):
                raise RuleEditError(f"Parameter already used in this group: {parameter}",
                                    code="DUPLICATE_PARAMETER")
        new_operator = rule.operator
        if operator is not None:
            try:
                new_operator = MatchOperator(operator)
            except ValueError:
                raise RuleEditError(f"Unknown match type: {operator}",
                                    code="INVALID_OPERATOR") from None

        rule.parameter = new_parameter
        rule.operator = new_operator
        if value is not None:
            rule.value = value
        return rule
