"""
Configuration Management Module
Loads and validates configuration from config.yaml
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, List

import yaml

from watchlist_types import (
    RuleSet,
    WatchlistLevel,
    rule_set_from_list,
)

logger = logging.getLogger(__name__)

DEFAULT_GROUP_ID = "default-group"

DEFAULT_RULE_GROUPS: List[Dict[str, Any]] = [
    {
        'id': DEFAULT_GROUP_ID,
        'name': 'Default Group',
        'rules': [
            {'id': 'rule-1', 'parameter': 'firstName', 'type': 'partial'},
            {'id': 'rule-2', 'parameter': 'lastName', 'type': 'exact'},
        ],
    }
]

DEFAULT_LEVELS: List[Dict[str, Any]] = [
    {
        'id': 'high-risk',
        'name': 'High risk',
        'color': 'red',
        'sendEmailNotifications': True,
        'notificationRecipients': ['security-team', 'management'],
        'systemLogging': True,
        'requiresManualApproval': True,
    },
    {
        'id': 'medium-priority',
        'name': 'Medium priority',
        'color': 'yellow',
        'sendEmailNotifications': True,
        'notificationRecipients': ['security-team'],
        'systemLogging': True,
        'requiresManualApproval': False,
    },
    {
        'id': 'low-priority',
        'name': 'Low priority',
        'color': 'gray',
        'sendEmailNotifications': False,
        'notificationRecipients': [],
        'systemLogging': True,
        'requiresManualApproval': False,
    },
]

VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class MatchingConfig:
    """Matching engine options"""
    # Treat an empty value on either side as a non-match for exact/partial
    require_non_empty_values: bool = False
    trim_whitespace: bool = False


@dataclass
class RulesConfig:
    """Initial watchlist rule set"""
    default_group_id: str = DEFAULT_GROUP_ID
    groups: List[Dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_RULE_GROUPS))


@dataclass
class LevelsConfig:
    """Initial watchlist levels"""
    levels: List[Dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_LEVELS))


@dataclass
class InputValidationConfig:
    """Limits applied by the watchlist and visitor forms"""
    level_name_max_length: int = 64
    name_max_length: int = 200


@dataclass
class VisitorConfig:
    """Visitor check-in behaviour"""
    manual_validation: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: str = "logs/watchlist.log"
    console: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    security_log_dir: str = "logs"


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


class ConfigManager:
    """Manages system configuration"""

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._raw_config: Dict[str, Any] = {}
        self.matching: MatchingConfig = MatchingConfig()
        self.rules: RulesConfig = RulesConfig()
        self.levels: LevelsConfig = LevelsConfig()
        self.input_validation: InputValidationConfig = InputValidationConfig()
        self.visitors: VisitorConfig = VisitorConfig()
        self.logging: LoggingConfig = LoggingConfig()

        if self.config_path and self.config_path.exists():
            self.load()
        else:
            logger.warning(f"Config file not found at {self.config_path}, using defaults")

    @classmethod
    def create(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Build a standalone instance for explicit injection.

        Without a path only the built-in defaults are used, regardless of
        any config.yaml lying around.
        """
        if config_path is None:
            instance = cls.__new__(cls)
            instance.config_path = None
            instance._raw_config = {}
            instance.matching = MatchingConfig()
            instance.rules = RulesConfig()
            instance.levels = LevelsConfig()
            instance.input_validation = InputValidationConfig()
            instance.visitors = VisitorConfig()
            instance.logging = LoggingConfig()
            return instance
        return cls(config_path)

    def _find_config(self) -> Path:
        """Find config.yaml in common locations"""
        search_paths = [
            Path(__file__).parent / "config.yaml",
            Path.cwd() / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return search_paths[0]

    def load(self) -> None:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError("Config file must contain a mapping at the top level")

        self._parse_matching()
        self._parse_rules()
        self._parse_levels()
        self._parse_input_validation()
        self._parse_visitors()
        self._parse_logging()
        self._validate()

    def _parse_matching(self) -> None:
        """Parse matching configuration"""
        cfg = self._raw_config.get('matching') or {}
        self.matching = MatchingConfig(
            require_non_empty_values=bool(cfg.get('require_non_empty_values', False)),
            trim_whitespace=bool(cfg.get('trim_whitespace', False)),
        )

    def _parse_rules(self) -> None:
        """Parse initial rule set"""
        cfg = self._raw_config.get('rules') or {}
        self.rules = RulesConfig(
            default_group_id=cfg.get('default_group_id', DEFAULT_GROUP_ID),
            groups=cfg.get('groups', self.rules.groups),
        )

    def _parse_levels(self) -> None:
        """Parse watchlist levels"""
        cfg = self._raw_config.get('levels')
        if cfg is not None:
            self.levels = LevelsConfig(levels=list(cfg))

    def _parse_input_validation(self) -> None:
        """Parse input validation configuration"""
        cfg = self._raw_config.get('input_validation') or {}
        self.input_validation = InputValidationConfig(
            level_name_max_length=cfg.get('level_name_max_length', 64),
            name_max_length=cfg.get('name_max_length', 200),
        )

    def _parse_visitors(self) -> None:
        """Parse visitor configuration"""
        cfg = self._raw_config.get('visitors') or {}
        self.visitors = VisitorConfig(
            manual_validation=bool(cfg.get('manual_validation', False)),
        )

    def _parse_logging(self) -> None:
        """Parse logging configuration"""
        cfg = self._raw_config.get('logging') or {}
        self.logging = LoggingConfig(
            level=str(cfg.get('level', 'INFO')).upper(),
            file=cfg.get('file', 'logs/watchlist.log'),
            console=cfg.get('console', True),
            format=cfg.get('format', self.logging.format),
            security_log_dir=cfg.get('security_log_dir', 'logs'),
        )

    @classmethod
    def get_instance(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Get singleton instance of ConfigManager"""
        if cls._instance is None:
            cls._instance = ConfigManager(config_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)"""
        cls._instance = None

    def rule_set(self) -> RuleSet:
        """Fresh rule set objects built from the configured groups"""
        return rule_set_from_list(copy.deepcopy(self.rules.groups))

    def watchlist_levels(self) -> List[WatchlistLevel]:
        return [WatchlistLevel.from_dict(level) for level in self.levels.levels]

    def configure_logging(self) -> None:
        """Apply the logging section to the root logger"""
        handlers: List[logging.Handler] = []
        if self.logging.console:
            handlers.append(logging.StreamHandler())
        if self.logging.file:
            log_path = Path(self.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding='utf-8'))
        logging.basicConfig(
            level=getattr(logging, self.logging.level, logging.INFO),
            format=self.logging.format,
            handlers=handlers or None,
            force=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'matching': {
                'require_non_empty_values': self.matching.require_non_empty_values,
                'trim_whitespace': self.matching.trim_whitespace,
            },
            'rules': {
                'default_group_id': self.rules.default_group_id,
                'groups': copy.deepcopy(self.rules.groups),
            },
            'levels': copy.deepcopy(self.levels.levels),
            'input_validation': {
                'level_name_max_length': self.input_validation.level_name_max_length,
                'name_max_length': self.input_validation.name_max_length,
            },
            'visitors': {
                'manual_validation': self.visitors.manual_validation,
            },
            'logging': {
                'level': self.logging.level,
                'file': self.logging.file,
                'console': self.logging.console,
                'format': self.logging.format,
                'security_log_dir': self.logging.security_log_dir,
            },
        }

    def _validate(self) -> None:
        """Validate configuration values"""
        groups = self.rules.groups or []
        default_groups = [g for g in groups if g.get('id') == self.rules.default_group_id]
        if not default_groups:
            raise ConfigurationError(
                f"Rule set must contain the default group '{self.rules.default_group_id}'"
            )
        if not default_groups[0].get('rules'):
            raise ConfigurationError("Default rule group must contain at least one rule")

        seen_ids = set()
        seen_names = set()
        max_length = self.input_validation.level_name_max_length
        for level in self.levels.levels:
            level_id = level.get('id')
            name = (level.get('name') or '').strip()
            if not name:
                raise ConfigurationError(f"Watchlist level '{level_id}' has no name")
            if len(name) > max_length:
                raise ConfigurationError(
                    f"Watchlist level name '{name}' exceeds {max_length} characters"
                )
            if level_id in seen_ids:
                raise ConfigurationError(f"Duplicate watchlist level id: {level_id}")
            if name.lower() in seen_names:
                raise ConfigurationError(f"Duplicate watchlist level name: {name}")
            seen_ids.add(level_id)
            seen_names.add(name.lower())

        if self.logging.level not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"Invalid logging level: {self.logging.level}")


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to get configuration instance"""
    return ConfigManager.get_instance(config_path)
