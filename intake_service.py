"""
Visitor intake and approval workflow

Registers visits, screens each visitor against the watchlist, and handles
the manual approve/deny decisions security staff take on flagged visitors.

Key Features:
- Every registration is evaluated against the rule set and entries as
  they are at that moment
- A match puts the visitor into pending approval and records the matched
  entries and the level of the first one
- Security log events and notification emails follow the flags of the
  matched level

Usage:
    service = VisitorIntakeService(watchlist, levels, visitors, rule_set)
    visitor = service.register_visit(form)
    if visitor.watchlist_match:
        service.approve_visitor(visitor.id, approved_by="Security Steve")
"""

import logging
import uuid
from typing import Callable, List, Optional, Union

from config_manager import get_config, ConfigManager
from log_utils import sanitize_for_logging
from match_explainer import MatchExplanation, build_match_explanation
from matcher import WatchlistMatcher
from schemas import VisitorRegistrationForm
from security_logger import SecurityLogger, get_security_logger
from stores import LevelRepository, VisitorRepository, WatchlistRepository
from watchlist_types import (
    ApprovalStatus,
    EmailAction,
    MatchResult,
    RuleSet,
    SentEmail,
    VisitorEntry,
    VisitorStatus,
    WatchlistEntry,
)

logger = logging.getLogger(__name__)

RuleSetSource = Union[RuleSet, Callable[[], RuleSet]]


class VisitorIntakeService:
    """
    Screens new visits against the watchlist and runs the approval flow.

    Collaborators are injected; nothing is cached between calls, so edits
    to the rule set or the watchlist apply to the next registration.
    """

    def __init__(self,
                 watchlist: WatchlistRepository,
                 levels: LevelRepository,
                 visitors: VisitorRepository,
                 rule_set: RuleSetSource,
                 matcher: Optional[WatchlistMatcher] = None,
                 security_logger: Optional[SecurityLogger] = None,
                 config: Optional[ConfigManager] = None):
        """
        Initialize the intake service.

        Args:
            watchlist: Watchlist entry store
            levels: Watchlist level store
            visitors: Visitor store
            rule_set: The live rule set list, or a callable returning it
            matcher: Match engine front end (built from config if omitted)
            security_logger: Security event log (global logger if omitted)
            config: Optional ConfigManager instance
        """
        self.config = config or get_config()
        self.watchlist = watchlist
        self.levels = levels
        self.visitors = visitors
        self._rule_set = rule_set
        self.matcher = matcher or WatchlistMatcher(self.config)
        self.security_logger = security_logger or get_security_logger(
            log_dir=self.config.logging.security_log_dir
        )
        self._sent_emails: List[SentEmail] = []

    def current_rule_set(self) -> RuleSet:
        if callable(self._rule_set):
            return self._rule_set()
        return self._rule_set

    # ============================================
    # SCREENING
    # ============================================

    def screen(self, visitor: VisitorEntry) -> MatchResult:
        return self.matcher.evaluate(
            visitor.candidate(), self.current_rule_set(), self.watchlist.list_all()
        )

    def _apply_result(self, visitor: VisitorEntry, result: MatchResult) -> None:
        level_id = None
        if result.is_match:
            first_entry = self.watchlist.get_by_id(result.matched_entry_ids[0])
            level_id = first_entry.level_id
        self.visitors.update_watchlist_status(
            visitor.id, result.is_match, level_id, result.matched_entry_ids
        )

        if result.is_match:
            visitor.approval_status = ApprovalStatus.PENDING
        elif self.config.visitors.manual_validation:
            visitor.approval_status = None
        else:
            visitor.approval_status = ApprovalStatus.APPROVED

    def register_visit(self, form: VisitorRegistrationForm) -> VisitorEntry:
        """Store a new visit and screen the visitor against the watchlist"""
        visitor = form.to_visitor()
        visitor.status = VisitorStatus.UPCOMING
        self.visitors.add(visitor)

        result = self.screen(visitor)
        self._apply_result(visitor, result)

        if result.is_match:
            self._on_match(visitor)
        else:
            logger.info(f"Visit registered for {sanitize_for_logging(visitor.name)}: no watchlist match")
        return visitor

    def register_visits(self, forms: List[VisitorRegistrationForm]) -> List[VisitorEntry]:
        return [self.register_visit(form) for form in forms]

    def recheck_visitor(self, visitor_id: str) -> MatchResult:
        """Screen a stored visitor again with the current rules and entries.

        A flagged visitor already approved or denied by security keeps that
        decision; only the match flags are refreshed. A visitor approved
        automatically because nothing matched has no such decision and goes
        to pending approval if a match now appears.
        """
        visitor = self.visitors.get_by_id(visitor_id)
        decided = visitor.approval_status in (ApprovalStatus.APPROVED, ApprovalStatus.DENIED)
        was_match = visitor.watchlist_match
        result = self.screen(visitor)

        if decided and was_match:
            self.visitors.update_watchlist_status(
                visitor.id, result.is_match,
                visitor.watchlist_level_id if result.is_match else None,
                result.matched_entry_ids,
            )
            return result

        self._apply_result(visitor, result)
        if result.is_match and not was_match:
            self._on_match(visitor)
        return result

    def _on_match(self, visitor: VisitorEntry) -> None:
        level = self.levels.get_by_id(visitor.watchlist_level_id)
        level_name = self.levels.get_name(visitor.watchlist_level_id)
        requires_approval = bool(level and level.requires_manual_approval)

        logger.warning(
            f"Watchlist match for visitor {sanitize_for_logging(visitor.name)} "
            f"({visitor.id}): entries {visitor.matched_entry_ids}, level {level_name}"
        )

        if level is None or level.system_logging:
            self.security_logger.log_watchlist_match(
                visitor_name=visitor.name,
                visitor_id=visitor.id,
                matched_entry_ids=visitor.matched_entry_ids,
                level_id=visitor.watchlist_level_id,
                level_name=level_name,
                requires_manual_approval=requires_approval,
            )

        if level is not None and level.send_email_notifications:
            self._queue_security_email(visitor, level_name, requires_approval,
                                       level.notification_recipients)

    # ============================================
    # APPROVAL WORKFLOW
    # ============================================

    def pending_approval(self) -> List[VisitorEntry]:
        return self.visitors.pending_approval()

    def approve_visitor(self, visitor_id: str, approved_by: str) -> VisitorEntry:
        visitor = self.visitors.get_by_id(visitor_id)
        visitor.approval_status = ApprovalStatus.APPROVED
        visitor.approved_by = approved_by
        visitor.status = VisitorStatus.VALIDATED

        self.security_logger.log_approval_decision(visitor.name, visitor.id, True, approved_by)
        self._queue_email(
            visitor,
            EmailAction.APPROVED,
            subject=f"Visitor Approved: {visitor.name}",
            body=(
                f"Dear {visitor.host},\n\nYour visitor {visitor.name} has been approved for entry. "
                f"They may now proceed with their scheduled visit.\n\nBest regards,\nSecurity Team"
            ),
        )
        return visitor

    def deny_visitor(self, visitor_id: str, denied_by: str) -> VisitorEntry:
        visitor = self.visitors.get_by_id(visitor_id)
        visitor.approval_status = ApprovalStatus.DENIED
        visitor.denied_by = denied_by
        visitor.status = VisitorStatus.CANCELED

        self.security_logger.log_approval_decision(visitor.name, visitor.id, False, denied_by)
        self._queue_email(
            visitor,
            EmailAction.DENIED,
            subject=f"Visitor Denied: {visitor.name}",
            body=(
                f"Dear {visitor.host},\n\nYour visitor {visitor.name} has been denied entry due to "
                f"security concerns. Please contact security for more information.\n\n"
                f"Best regards,\nSecurity Team"
            ),
        )
        return visitor

    # ============================================
    # MATCH DETAILS
    # ============================================

    def get_watchlist_entries_for_visitor(self, visitor_id: str) -> List[WatchlistEntry]:
        """Entries recorded against the visitor that still exist"""
        visitor = self.visitors.get_by_id(visitor_id)
        if not visitor.watchlist_match:
            return []
        entries = (self.watchlist.find(entry_id) for entry_id in visitor.matched_entry_ids)
        return [entry for entry in entries if entry is not None]

    def explain_visitor_match(self, visitor_id: str) -> List[MatchExplanation]:
        visitor = self.visitors.get_by_id(visitor_id)
        candidate = visitor.candidate()
        return [
            build_match_explanation(candidate, entry, self.levels.get_by_id(entry.level_id))
            for entry in self.get_watchlist_entries_for_visitor(visitor_id)
        ]

    # ============================================
    # EMAILS
    # ============================================

    def _queue_email(self, visitor: VisitorEntry, action: EmailAction,
                     subject: str, body: str) -> SentEmail:
        email = SentEmail(
            id=uuid.uuid4().hex,
            visitor_name=visitor.name,
            host_name=visitor.host,
            host_email=visitor.host_email,
            subject=subject,
            body=body,
            action=action,
        )
        self._sent_emails.append(email)
        return email

    def _queue_security_email(self, visitor: VisitorEntry, level_name: str,
                              requires_approval: bool, recipients: List[str]) -> SentEmail:
        if requires_approval:
            action = EmailAction.SECURITY_ACTION_REQUIRED
            subject = f"Security Action Required: {visitor.name}"
            closing = "This visitor requires manual approval before entry."
        else:
            action = EmailAction.SECURITY_FYI
            subject = f"Security Notice: {visitor.name}"
            closing = "No action is required; this notice is for your information."
        body = (
            f"Visitor {visitor.name} (host: {visitor.host or 'unknown'}) matched the watchlist "
            f"at level {level_name}.\n\n{closing}\n\n"
            f"Recipients: {', '.join(recipients) or 'none'}"
        )
        return self._queue_email(visitor, action, subject, body)

    def sent_emails(self) -> List[SentEmail]:
        return list(self._sent_emails)

    def clear_sent_emails(self) -> None:
        self._sent_emails.clear()


def registration_message(visitors: List[VisitorEntry]) -> str:
    """Confirmation text shown after registering one or more visits"""
    noun = "Visit" if len(visitors) == 1 else "Visits"
    names = ", ".join(visitor.name for visitor in visitors)
    return f"{noun} registered successfully for {names}"
