"""
Watchlist match explanation

Builds the text shown to security staff when a visitor matches the
watchlist. The matched-field list is recomputed here from the candidate and
the entry alone; it explains a match, it never decides one.
"""

from dataclasses import dataclass
from typing import List, Dict, Optional, Any

from watchlist_types import (
    CandidateIdentity,
    WatchlistEntry,
    WatchlistLevel,
    WatchlistRule,
    WatchlistRuleGroup,
    RuleSet,
    RuleParameter,
    MatchOperator,
    LevelColor,
)

DEFAULT_MATCHED_FIELDS = ["firstName", "lastName"]
UNKNOWN_LEVEL_NAME = "Unknown"

PARAMETER_LABELS = {
    RuleParameter.FIRST_NAME: "First Name",
    RuleParameter.LAST_NAME: "Last Name",
    RuleParameter.EMAIL: "Email",
    RuleParameter.PHONE: "Phone",
}

OPERATOR_LABELS = {
    MatchOperator.EXACT: "Exact Match",
    MatchOperator.CONTAINS: "Contains",
    MatchOperator.PARTIAL: "Partial Match",
}

BADGE_CLASSES = {
    LevelColor.RED: "bg-red-100 text-red-800",
    LevelColor.YELLOW: "bg-yellow-100 text-yellow-800",
    LevelColor.GRAY: "bg-gray-100 text-gray-800",
}


def _same(left: Optional[str], right: Optional[str]) -> bool:
    # An empty side says nothing about the visitor, so it is never shown
    if not left or not right:
        return False
    return left.lower() == right.lower()


def get_matched_fields(candidate: CandidateIdentity, entry: WatchlistEntry) -> List[str]:
    """Fields where the candidate and the entry agree, for display.

    Compares first name, last name and primary email case-insensitively.
    """
    fields = []
    if _same(candidate.first_name, entry.first_name):
        fields.append("firstName")
    if _same(candidate.last_name, entry.last_name):
        fields.append("lastName")
    if _same(candidate.email, entry.primary_email):
        fields.append("email")
    return fields


def display_matched_fields(fields: List[str]) -> List[str]:
    return list(fields) if fields else list(DEFAULT_MATCHED_FIELDS)


def format_matched_fields(fields: List[str]) -> str:
    return ", ".join(display_matched_fields(fields))


def badge_classes(level: Optional[WatchlistLevel]) -> str:
    if level is None:
        return BADGE_CLASSES[LevelColor.GRAY]
    return BADGE_CLASSES.get(level.color, BADGE_CLASSES[LevelColor.GRAY])


def parameter_label(parameter: Any) -> str:
    return PARAMETER_LABELS.get(parameter, str(parameter))


def operator_label(operator: Any) -> str:
    return OPERATOR_LABELS.get(operator, str(operator))


def describe_rule(rule: WatchlistRule) -> str:
    """e.g. "First Name partial match" or "Email contains 'corp'"."""
    text = f"{parameter_label(rule.parameter)} {operator_label(rule.operator).lower()}"
    if rule.operator == MatchOperator.CONTAINS and rule.value:
        text += f" '{rule.value}'"
    return text


def describe_group(group: WatchlistRuleGroup) -> str:
    if not group.rules:
        return "No rules defined"
    return " AND ".join(describe_rule(rule) for rule in group.rules)


def describe_rule_set(rule_set: RuleSet) -> str:
    described = [f"({describe_group(g)})" for g in rule_set if g.rules]
    return " OR ".join(described) if described else "No rules defined"


@dataclass
class MatchExplanation:
    """Content of the "watchlist match detected" panel"""
    entry_id: str
    full_name: str
    level_name: str
    level_badge: str
    matched_fields: List[str]
    matched_fields_text: str
    notes: str
    reported_by: str
    requires_manual_approval: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entryId': self.entry_id,
            'fullName': self.full_name,
            'levelName': self.level_name,
            'levelBadge': self.level_badge,
            'matchedFields': list(self.matched_fields),
            'matchedFieldsText': self.matched_fields_text,
            'notes': self.notes,
            'reportedBy': self.reported_by,
            'requiresManualApproval': self.requires_manual_approval,
        }


def build_match_explanation(candidate: CandidateIdentity,
                            entry: WatchlistEntry,
                            level: Optional[WatchlistLevel] = None) -> MatchExplanation:
    fields = display_matched_fields(get_matched_fields(candidate, entry))
    return MatchExplanation(
        entry_id=entry.id,
        full_name=entry.full_name,
        level_name=level.name if level else UNKNOWN_LEVEL_NAME,
        level_badge=badge_classes(level),
        matched_fields=fields,
        matched_fields_text=", ".join(fields),
        notes=entry.notes,
        reported_by=entry.reported_by,
        requires_manual_approval=bool(level and level.requires_manual_approval),
    )
