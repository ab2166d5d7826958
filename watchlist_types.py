"""
Watchlist data model

Dataclasses for the watchlist registry, its severity levels, the rule set
that drives matching, visitors and the notification emails the console
sends. Dictionaries use the camelCase keys of the console front end.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Optional, Any, Union, Type


class RuleParameter(str, Enum):
    """Identity field a rule compares"""
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    EMAIL = "email"
    PHONE = "phone"


class MatchOperator(str, Enum):
    """Comparison applied by a rule"""
    EXACT = "exact"
    CONTAINS = "contains"
    PARTIAL = "partial"


class EntryStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class LevelColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GRAY = "gray"


class VisitorStatus(str, Enum):
    CHECKED_IN = "Checked in"
    UPCOMING = "Upcoming"
    NO_SHOW = "No show"
    VALIDATED = "Validated"
    CANCELED = "Canceled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class EmailAction(str, Enum):
    APPROVED = "approved"
    DENIED = "denied"
    SECURITY_ACTION_REQUIRED = "security-action-required"
    SECURITY_FYI = "security-fyi"


def _coerce(enum_cls: Type[Enum], raw: Any) -> Union[Enum, str]:
    """Map a raw value onto enum_cls, keeping unknown values as plain strings"""
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        return "" if raw is None else str(raw)


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# RULES
# ============================================

@dataclass
class WatchlistRule:
    """One atomic comparison between a candidate field and an entry field.

    ``parameter`` and ``operator`` hold the raw string when a configuration
    written by a newer editor names something this version does not know;
    such a rule never matches.
    """
    id: str
    parameter: Union[RuleParameter, str]
    operator: Union[MatchOperator, str]
    value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'parameter': _enum_value(self.parameter),
            'type': _enum_value(self.operator),
        }
        if self.value is not None:
            data['value'] = self.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatchlistRule':
        return cls(
            id=str(data.get('id', '')),
            parameter=_coerce(RuleParameter, data.get('parameter')),
            operator=_coerce(MatchOperator, data.get('type', data.get('operator'))),
            value=data.get('value'),
        )


@dataclass
class WatchlistRuleGroup:
    """Rules combined with AND logic"""
    id: str
    name: str
    rules: List[WatchlistRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'rules': [rule.to_dict() for rule in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatchlistRuleGroup':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            rules=[WatchlistRule.from_dict(r) for r in data.get('rules') or []],
        )


# Groups combined with OR logic
RuleSet = List[WatchlistRuleGroup]


def rule_set_from_list(data: List[Dict[str, Any]]) -> RuleSet:
    return [WatchlistRuleGroup.from_dict(group) for group in data or []]


def rule_set_to_list(rule_set: RuleSet) -> List[Dict[str, Any]]:
    return [group.to_dict() for group in rule_set]


# ============================================
# WATCHLIST
# ============================================

@dataclass
class WatchlistLevel:
    """Severity tier a watchlist entry belongs to"""
    id: str
    name: str
    color: Union[LevelColor, str] = LevelColor.GRAY
    send_email_notifications: bool = False
    notification_recipients: List[str] = field(default_factory=list)
    system_logging: bool = True
    requires_manual_approval: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'color': _enum_value(self.color),
            'sendEmailNotifications': self.send_email_notifications,
            'notificationRecipients': list(self.notification_recipients),
            'systemLogging': self.system_logging,
            'requiresManualApproval': self.requires_manual_approval,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatchlistLevel':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            color=_coerce(LevelColor, data.get('color', 'gray')),
            send_email_notifications=bool(data.get('sendEmailNotifications', False)),
            notification_recipients=list(data.get('notificationRecipients') or []),
            system_logging=bool(data.get('systemLogging', True)),
            requires_manual_approval=bool(data.get('requiresManualApproval', False)),
        )


@dataclass
class Attachment:
    id: str
    name: str
    url: str
    uploaded_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'url': self.url, 'uploadedAt': self.uploaded_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Attachment':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            url=data.get('url', ''),
            uploaded_at=data.get('uploadedAt', ''),
        )


@dataclass
class WatchlistEntry:
    """A flagged individual"""
    id: str
    first_name: str
    last_name: str
    alternative_first_names: List[str] = field(default_factory=list)
    alternative_last_names: List[str] = field(default_factory=list)
    primary_email: Optional[str] = None
    additional_emails: List[str] = field(default_factory=list)
    primary_phone: Optional[str] = None
    additional_phones: List[str] = field(default_factory=list)
    level_id: str = ""
    notes: str = ""
    reported_by: str = ""
    status: Union[EntryStatus, str] = EntryStatus.ACTIVE
    last_updated: datetime = field(default_factory=utc_now)
    attachments: List[Attachment] = field(default_factory=list)

    @property
    def aliases(self) -> List[str]:
        return [*self.alternative_first_names, *self.alternative_last_names]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == EntryStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'alternativeFirstNames': list(self.alternative_first_names),
            'alternativeLastNames': list(self.alternative_last_names),
            'primaryEmail': self.primary_email,
            'additionalEmails': list(self.additional_emails),
            'primaryPhone': self.primary_phone,
            'additionalPhones': list(self.additional_phones),
            'levelId': self.level_id,
            'notes': self.notes,
            'reportedBy': self.reported_by,
            'status': _enum_value(self.status),
            'lastUpdated': self.last_updated.isoformat(),
            'attachments': [a.to_dict() for a in self.attachments],
            'aliases': self.aliases,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatchlistEntry':
        last_updated = data.get('lastUpdated')
        if isinstance(last_updated, str):
            last_updated = datetime.fromisoformat(last_updated)
        return cls(
            id=str(data.get('id', '')),
            first_name=data.get('firstName', ''),
            last_name=data.get('lastName', ''),
            alternative_first_names=list(data.get('alternativeFirstNames') or []),
            alternative_last_names=list(data.get('alternativeLastNames') or []),
            primary_email=data.get('primaryEmail'),
            additional_emails=list(data.get('additionalEmails') or []),
            primary_phone=data.get('primaryPhone'),
            additional_phones=list(data.get('additionalPhones') or []),
            level_id=data.get('levelId', ''),
            notes=data.get('notes', ''),
            reported_by=data.get('reportedBy', ''),
            status=_coerce(EntryStatus, data.get('status', 'active')),
            last_updated=last_updated or utc_now(),
            attachments=[Attachment.from_dict(a) for a in data.get('attachments') or []],
        )


# ============================================
# MATCHING INPUT / OUTPUT
# ============================================

@dataclass(frozen=True)
class CandidateIdentity:
    """Identity of an incoming visitor checked against the watchlist"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_full_name(cls, name: Optional[str], email: Optional[str] = None,
                       phone: Optional[str] = None) -> 'CandidateIdentity':
        """Split "First Rest Of Name" on the first space"""
        first_name, _, last_name = (name or "").partition(" ")
        return cls(first_name=first_name, last_name=last_name, email=email, phone=phone)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'phone': self.phone,
        }


@dataclass
class MatchResult:
    """Verdict of one evaluation plus the per-entry field explanation"""
    is_match: bool = False
    matched_entry_ids: List[str] = field(default_factory=list)
    matched_fields: Dict[str, List[str]] = field(default_factory=dict)

    def get_matched_fields(self, entry_id: str) -> List[str]:
        return list(self.matched_fields.get(entry_id, []))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isMatch': self.is_match,
            'matchedEntryIds': list(self.matched_entry_ids),
            'matchedFields': {k: list(v) for k, v in self.matched_fields.items()},
        }


# ============================================
# VISITORS
# ============================================

@dataclass
class VisitorEntry:
    """A registered visit as shown in the visitor log"""
    id: str
    name: str
    email: str = ""
    phone: str = ""
    status: Union[VisitorStatus, str] = VisitorStatus.UPCOMING
    date: str = ""
    arrival: str = ""
    departure: str = ""
    host: str = ""
    host_email: str = ""
    host_phone: str = ""
    host_company: str = ""
    host_company_location: str = ""
    floor: str = ""
    watchlist_match: bool = False
    watchlist_level_id: Optional[str] = None
    matched_entry_ids: List[str] = field(default_factory=list)
    approval_status: Optional[ApprovalStatus] = None
    approved_by: Optional[str] = None
    denied_by: Optional[str] = None
    # Registered name parts; records without them fall back to splitting name
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def candidate(self) -> CandidateIdentity:
        if self.first_name is None and self.last_name is None:
            return CandidateIdentity.from_full_name(self.name, self.email, self.phone)
        return CandidateIdentity(
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            email=self.email,
            phone=self.phone,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'status': _enum_value(self.status),
            'date': self.date,
            'arrival': self.arrival,
            'departure': self.departure,
            'host': self.host,
            'hostEmail': self.host_email,
            'hostPhone': self.host_phone,
            'hostCompany': self.host_company,
            'hostCompanyLocation': self.host_company_location,
            'floor': self.floor,
            'watchlistMatch': self.watchlist_match,
            'watchlistLevelId': self.watchlist_level_id,
            'matchedEntryIds': list(self.matched_entry_ids),
            'approvalStatus': self.approval_status.value if self.approval_status else None,
            'approvedBy': self.approved_by,
            'deniedBy': self.denied_by,
        }


@dataclass
class SentEmail:
    """Notification queued by the approval workflow"""
    id: str
    visitor_name: str
    host_name: str
    host_email: str
    subject: str
    body: str
    action: EmailAction
    sent_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'visitorName': self.visitor_name,
            'hostName': self.host_name,
            'hostEmail': self.host_email,
            'subject': self.subject,
            'body': self.body,
            'action': self.action.value,
            'sentAt': self.sent_at.isoformat(),
        }
