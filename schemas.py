"""
Pydantic form schemas for the watchlist and visitor screens

Validation that the console performs before data reaches the stores. The
match engine never validates; anything that passes these forms, and
anything that does not, is still evaluated without raising.
"""

from typing import List, Optional, Dict, Any, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from config_manager import ConfigManager, InputValidationConfig, get_config
from security_logger import SecurityLogger
from watchlist_types import (
    CandidateIdentity,
    LevelColor,
    VisitorEntry,
    WatchlistEntry,
    WatchlistLevel,
)

FormT = TypeVar('FormT', bound=BaseModel)


class FormValidationError(ValueError):
    """Raised when a form fails validation

    Attributes:
        errors: Mapping of field name to error message
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid form fields: {fields}")


def _not_blank(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be empty")
    return value


def _limits(info: ValidationInfo) -> InputValidationConfig:
    """Length limits passed in by validate_form, or the built-in defaults"""
    context = info.context or {}
    return context.get('limits') or InputValidationConfig()


def _within(value: str, max_length: int) -> str:
    if len(value) > max_length:
        raise ValueError(f"must be at most {max_length} characters")
    return value


class WatchlistEntryForm(BaseModel):
    """Add/edit watchlist entry form."""
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    alternative_first_names: List[str] = Field(default_factory=list, alias="alternativeFirstNames")
    alternative_last_names: List[str] = Field(default_factory=list, alias="alternativeLastNames")
    primary_email: Optional[str] = Field(default=None, alias="primaryEmail")
    additional_emails: List[str] = Field(default_factory=list, alias="additionalEmails")
    primary_phone: Optional[str] = Field(default=None, alias="primaryPhone")
    additional_phones: List[str] = Field(default_factory=list, alias="additionalPhones")
    level_id: str = Field(..., alias="levelId", min_length=1)
    notes: str = ""
    reported_by: str = Field(default="", alias="reportedBy")

    model_config = {"populate_by_name": True}

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str, info: ValidationInfo) -> str:
        return _within(_not_blank(v), _limits(info).name_max_length)

    @field_validator('alternative_first_names', 'alternative_last_names',
                     'additional_emails', 'additional_phones')
    @classmethod
    def drop_blank_items(cls, v: List[str]) -> List[str]:
        return [item for item in v if item and item.strip()]

    @field_validator('primary_email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v and '@' not in v:
            raise ValueError("must be an email address")
        return v or None

    def to_entry(self, entry_id: str = "") -> WatchlistEntry:
        return WatchlistEntry(
            id=entry_id,
            first_name=self.first_name,
            last_name=self.last_name,
            alternative_first_names=list(self.alternative_first_names),
            alternative_last_names=list(self.alternative_last_names),
            primary_email=self.primary_email,
            additional_emails=list(self.additional_emails),
            primary_phone=self.primary_phone,
            additional_phones=list(self.additional_phones),
            level_id=self.level_id,
            notes=self.notes,
            reported_by=self.reported_by,
        )


class WatchlistLevelForm(BaseModel):
    """Watchlist level editor."""
    name: str
    color: LevelColor = LevelColor.GRAY
    send_email_notifications: bool = Field(default=False, alias="sendEmailNotifications")
    notification_recipients: List[str] = Field(default_factory=list, alias="notificationRecipients")
    system_logging: bool = Field(default=True, alias="systemLogging")
    requires_manual_approval: bool = Field(default=False, alias="requiresManualApproval")

    model_config = {"populate_by_name": True}

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str, info: ValidationInfo) -> str:
        return _within(_not_blank(v).strip(), _limits(info).level_name_max_length)

    def to_level(self, level_id: str = "") -> WatchlistLevel:
        return WatchlistLevel(
            id=level_id,
            name=self.name,
            color=self.color,
            send_email_notifications=self.send_email_notifications,
            notification_recipients=list(self.notification_recipients),
            system_logging=self.system_logging,
            requires_manual_approval=self.requires_manual_approval,
        )


class VisitorRegistrationForm(BaseModel):
    """Create new visit form."""
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str = ""
    phone: str = ""
    date: str = ""
    arrival: str = ""
    departure: str = ""
    host: str = ""
    host_email: str = Field(default="", alias="hostEmail")
    host_phone: str = Field(default="", alias="hostPhone")
    host_company: str = Field(default="", alias="hostCompany")
    host_company_location: str = Field(default="", alias="hostCompanyLocation")
    floor: str = ""

    model_config = {"populate_by_name": True}

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str, info: ValidationInfo) -> str:
        return _within(_not_blank(v), _limits(info).name_max_length)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_candidate(self) -> CandidateIdentity:
        return CandidateIdentity(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
        )

    def to_visitor(self) -> VisitorEntry:
        return VisitorEntry(
            id="",
            name=self.full_name,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            date=self.date,
            arrival=self.arrival,
            departure=self.departure,
            host=self.host,
            host_email=self.host_email,
            host_phone=self.host_phone,
            host_company=self.host_company,
            host_company_location=self.host_company_location,
            floor=self.floor,
        )


def validate_form(model: Type[FormT], data: Dict[str, Any],
                  security_logger: Optional[SecurityLogger] = None,
                  config: Optional[ConfigManager] = None) -> FormT:
    """Validate raw form data, flattening pydantic errors per field.

    Name length limits come from the input_validation section of config.
    Each failing field is recorded on security_logger when one is given.

    Raises:
        FormValidationError: If any field is invalid
    """
    limits = (config or get_config()).input_validation
    try:
        return model.model_validate(data, context={'limits': limits})
    except ValidationError as e:
        errors = {}
        for error in e.errors():
            location = ".".join(str(part) for part in error['loc']) or "form"
            errors.setdefault(location, error['msg'])
            if security_logger is not None:
                security_logger.log_validation_failure(
                    field=location,
                    error_code=error['type'].upper(),
                    input_value=str(error.get('input', '')),
                    source=f"schemas.{model.__name__}",
                )
        raise FormValidationError(errors) from e
