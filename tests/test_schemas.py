"""
Tests for form validation schemas.
"""

from unittest.mock import MagicMock

import pytest

from config_manager import ConfigManager
from schemas import (
    FormValidationError,
    VisitorRegistrationForm,
    WatchlistEntryForm,
    WatchlistLevelForm,
    validate_form,
)
from security_logger import SecurityLogger
from watchlist_types import EntryStatus, LevelColor


class TestWatchlistEntryForm:

    def test_valid_form_builds_entry(self):
        form = validate_form(WatchlistEntryForm, {
            'firstName': 'Jane',
            'lastName': 'Smith',
            'alternativeLastNames': ['Johnson', ''],
            'primaryEmail': 'jane.smith@example.com',
            'levelId': 'medium-priority',
            'reportedBy': 'Security Steve',
        })
        entry = form.to_entry()
        assert entry.first_name == 'Jane'
        assert entry.alternative_last_names == ['Johnson']
        assert entry.aliases == ['Johnson']
        assert entry.status == EntryStatus.ACTIVE

    @pytest.mark.parametrize("field", ["firstName", "lastName"])
    def test_blank_names_rejected(self, field):
        data = {'firstName': 'Jane', 'lastName': 'Smith', 'levelId': 'high-risk'}
        data[field] = '   '
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(WatchlistEntryForm, data)
        assert field in exc_info.value.errors

    def test_bad_email_rejected(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(WatchlistEntryForm, {
                'firstName': 'Jane', 'lastName': 'Smith', 'levelId': 'x',
                'primaryEmail': 'not-an-email',
            })
        assert 'primaryEmail' in exc_info.value.errors

    def test_missing_level(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(WatchlistEntryForm, {'firstName': 'Jane', 'lastName': 'Smith'})
        assert 'levelId' in exc_info.value.errors


class TestWatchlistLevelForm:

    def test_valid_level(self):
        form = validate_form(WatchlistLevelForm, {'name': ' Critical ', 'color': 'red',
                                                  'requiresManualApproval': True})
        level = form.to_level("critical")
        assert level.name == 'Critical'
        assert level.color == LevelColor.RED
        assert level.requires_manual_approval is True

    def test_name_length_limit(self):
        validate_form(WatchlistLevelForm, {'name': 'x' * 64})
        with pytest.raises(FormValidationError):
            validate_form(WatchlistLevelForm, {'name': 'x' * 65})

    def test_empty_name(self):
        with pytest.raises(FormValidationError):
            validate_form(WatchlistLevelForm, {'name': ''})

    def test_unknown_color(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(WatchlistLevelForm, {'name': 'X', 'color': 'blue'})
        assert 'color' in exc_info.value.errors


class TestVisitorRegistrationForm:

    def test_candidate_and_visitor(self):
        form = validate_form(VisitorRegistrationForm, {
            'firstName': 'Mary Ann', 'lastName': 'Smith', 'email': 'ma@example.com',
            'phone': '555-0456', 'host': 'Alex Smith', 'hostEmail': 'alex@acme.com',
        })
        candidate = form.to_candidate()
        assert candidate.first_name == 'Mary Ann'
        assert candidate.last_name == 'Smith'

        visitor = form.to_visitor()
        assert visitor.name == 'Mary Ann Smith'
        assert visitor.host_email == 'alex@acme.com'

    def test_requires_both_names(self):
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(VisitorRegistrationForm, {'firstName': 'Jane', 'lastName': ''})
        assert list(exc_info.value.errors) == ['lastName']


def test_failures_recorded_on_security_logger():
    security_logger = MagicMock(spec=SecurityLogger)
    with pytest.raises(FormValidationError):
        validate_form(WatchlistLevelForm, {'name': ''}, security_logger=security_logger)

    security_logger.log_validation_failure.assert_called_once()
    kwargs = security_logger.log_validation_failure.call_args.kwargs
    assert kwargs['field'] == 'name'
    assert kwargs['source'] == 'schemas.WatchlistLevelForm'


class TestConfiguredLimits:

    @pytest.fixture
    def config(self):
        config = ConfigManager.create()
        config.input_validation.level_name_max_length = 10
        config.input_validation.name_max_length = 5
        return config

    def test_level_name_limit_from_config(self, config):
        validate_form(WatchlistLevelForm, {'name': 'x' * 10}, config=config)
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(WatchlistLevelForm, {'name': 'x' * 11}, config=config)
        assert 'name' in exc_info.value.errors

    def test_person_name_limit_from_config(self, config):
        validate_form(VisitorRegistrationForm, {'firstName': 'Jane', 'lastName': 'Smith'},
                      config=config)
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(WatchlistEntryForm,
                          {'firstName': 'Janet', 'lastName': 'Smithers', 'levelId': 'x'},
                          config=config)
        assert list(exc_info.value.errors) == ['lastName']

    def test_raised_limit_accepts_longer_names(self):
        config = ConfigManager.create()
        config.input_validation.level_name_max_length = 100
        form = validate_form(WatchlistLevelForm, {'name': 'x' * 80}, config=config)
        assert len(form.name) == 80
