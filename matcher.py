"""
Watchlist Match Engine

Decides whether a visitor identity matches any active watchlist entry.

Rule logic:
- A rule compares one identity field (first name, last name, email, phone)
  of the candidate against the same field of an entry
- A group matches when every rule in it matches (AND); an empty group
  never matches
- A rule set matches when any group matches (OR); the first matching
  group settles an entry

Operators (both sides lower-cased, missing values read as ""):
- exact:    candidate value == entry value
- contains: the rule's own value is a substring of the candidate value
- partial:  either value is a substring of the other

Only the primary fields of an entry take part; aliases and additional
emails/phones do not. The engine is total: unknown parameters or
operators make a rule fail, nothing raises.
"""

import logging
from typing import List, Iterable, Optional

from config_manager import get_config, ConfigManager
from log_utils import sanitize_for_logging
from match_explainer import get_matched_fields
from watchlist_types import (
    CandidateIdentity,
    MatchOperator,
    MatchResult,
    RuleParameter,
    RuleSet,
    WatchlistEntry,
    WatchlistRule,
    WatchlistRuleGroup,
)

logger = logging.getLogger(__name__)


def normalize_value(value: Optional[str], trim_whitespace: bool = False) -> str:
    """Lower-case a field value; None becomes the empty string"""
    if value is None:
        return ""
    text = str(value)
    if trim_whitespace:
        text = text.strip()
    return text.lower()


def candidate_field(candidate: CandidateIdentity, parameter) -> Optional[str]:
    if parameter == RuleParameter.FIRST_NAME:
        return candidate.first_name
    if parameter == RuleParameter.LAST_NAME:
        return candidate.last_name
    if parameter == RuleParameter.EMAIL:
        return candidate.email
    if parameter == RuleParameter.PHONE:
        return candidate.phone
    return None


def entry_field(entry: WatchlistEntry, parameter) -> Optional[str]:
    if parameter == RuleParameter.FIRST_NAME:
        return entry.first_name
    if parameter == RuleParameter.LAST_NAME:
        return entry.last_name
    if parameter == RuleParameter.EMAIL:
        return entry.primary_email
    if parameter == RuleParameter.PHONE:
        return entry.primary_phone
    return None


def rule_matches(rule: WatchlistRule,
                 candidate: CandidateIdentity,
                 entry: WatchlistEntry,
                 require_non_empty_values: bool = False,
                 trim_whitespace: bool = False) -> bool:
    """Evaluate a single rule for one (candidate, entry) pair.

    Args:
        rule: Rule to apply
        candidate: Visitor identity
        entry: Watchlist entry
        require_non_empty_values: When set, exact and partial never match
            if either side is empty
        trim_whitespace: Strip surrounding whitespace before comparing

    Returns:
        True if the rule is satisfied
    """
    if rule.parameter not in tuple(RuleParameter):
        return False

    candidate_value = normalize_value(candidate_field(candidate, rule.parameter), trim_whitespace)
    entry_value = normalize_value(entry_field(entry, rule.parameter), trim_whitespace)

    if rule.operator == MatchOperator.CONTAINS:
        needle = normalize_value(rule.value, trim_whitespace)
        if not needle:
            return False
        return needle in candidate_value

    if rule.operator not in (MatchOperator.EXACT, MatchOperator.PARTIAL):
        return False

    if require_non_empty_values and (not candidate_value or not entry_value):
        return False

    if rule.operator == MatchOperator.EXACT:
        return candidate_value == entry_value
    return candidate_value in entry_value or entry_value in candidate_value


def group_matches(group: WatchlistRuleGroup,
                  candidate: CandidateIdentity,
                  entry: WatchlistEntry,
                  require_non_empty_values: bool = False,
                  trim_whitespace: bool = False) -> bool:
    if not group.rules:
        return False
    return all(
        rule_matches(rule, candidate, entry, require_non_empty_values, trim_whitespace)
        for rule in group.rules
    )


def first_matching_group(rule_set: RuleSet,
                         candidate: CandidateIdentity,
                         entry: WatchlistEntry,
                         require_non_empty_values: bool = False,
                         trim_whitespace: bool = False) -> Optional[WatchlistRuleGroup]:
    for group in rule_set:
        if group_matches(group, candidate, entry, require_non_empty_values, trim_whitespace):
            return group
    return None


def evaluate(candidate: CandidateIdentity,
             rule_set: RuleSet,
             entries: Iterable[WatchlistEntry],
             require_non_empty_values: bool = False,
             trim_whitespace: bool = False) -> MatchResult:
    """Check a candidate against every active entry using the rule set.

    Inputs are only read. Each matched entry is reported once, in entry
    order, with the display fields computed by
    ``match_explainer.get_matched_fields``.
    """
    result = MatchResult()
    for entry in entries:
        if not entry.is_active:
            continue
        group = first_matching_group(rule_set, candidate, entry,
                                     require_non_empty_values, trim_whitespace)
        if group is None:
            continue
        result.matched_entry_ids.append(entry.id)
        result.matched_fields[entry.id] = get_matched_fields(candidate, entry)

    result.is_match = len(result.matched_entry_ids) > 0
    return result


class WatchlistMatcher:
    """Configured front end to :func:`evaluate`.

    Reads the matching options from configuration and logs each
    evaluation. It keeps no state between calls, so every call sees the
    rule set and entries exactly as they are at that moment.
    """

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or get_config()

    @property
    def require_non_empty_values(self) -> bool:
        return self.config.matching.require_non_empty_values

    @property
    def trim_whitespace(self) -> bool:
        return self.config.matching.trim_whitespace

    def evaluate(self, candidate: CandidateIdentity, rule_set: RuleSet,
                 entries: Iterable[WatchlistEntry]) -> MatchResult:
        entries = list(entries)
        result = evaluate(
            candidate,
            rule_set,
            entries,
            require_non_empty_values=self.require_non_empty_values,
            trim_whitespace=self.trim_whitespace,
        )

        logger.info(
            "Watchlist check for '%s %s': %s (%d matched of %d entries, %d groups)",
            sanitize_for_logging(candidate.first_name),
            sanitize_for_logging(candidate.last_name),
            "MATCH" if result.is_match else "clear",
            len(result.matched_entry_ids),
            len(entries),
            len(rule_set),
        )
        for entry_id in result.matched_entry_ids:
            logger.debug("  matched entry %s on fields %s",
                         entry_id, result.get_matched_fields(entry_id))
        return result

    def check(self, candidate: CandidateIdentity, rule_set: RuleSet,
              entries: Iterable[WatchlistEntry]) -> List[WatchlistEntry]:
        """Return the matched entries themselves rather than their ids"""
        entries = list(entries)
        result = self.evaluate(candidate, rule_set, entries)
        matched = set(result.matched_entry_ids)
        return [entry for entry in entries if entry.id in matched]
