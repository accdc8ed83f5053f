"""Configuration management for the score estimator."""

import json
import logging
import os
import copy
from typing import Dict, Any

from game.scoring import ScoringRules

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager."""

    DEFAULT_CONFIG = {
        'katago': {
            'executable_path': '',
            'config_path': '',
            'model_path': '',
            'analysis_timeout': 120,
            'rules': 'chinese'
        },
        'estimator': {
            'trials': 1000,
            'tolerance': 0.25
        },
        'scoring': {
            'score_stones': True,
            'score_prisoners': False,
            'score_territory': True,
            'score_territory_in_seki': True,
            'komi': 7.5,
            'handicap': 0
        }
    }

    def __init__(self, config_file: str = 'config.json'):
        """Initialize configuration.

        Args:
            config_file: Path to config file
        """
        self.config_file = config_file
        self.config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    self.config = json.load(f)
                # Merge with defaults for any missing keys
                self._merge_defaults()
            except (OSError, ValueError) as e:
                logger.error("Error loading config %s: %s", self.config_file, e)
                self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        else:
            self.config = copy.deepcopy(self.DEFAULT_CONFIG)
            self.save()

    def save(self) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            logger.error("Error saving config %s: %s", self.config_file, e)

    def _merge_defaults(self) -> None:
        """Merge default config with loaded config."""
        for key, value in self.DEFAULT_CONFIG.items():
            if key not in self.config:
                self.config[key] = copy.deepcopy(value)
            elif isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    if sub_key not in self.config[key]:
                        self.config[key][sub_key] = sub_value

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            section: Configuration section
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value
        """
        if section in self.config and key in self.config[section]:
            return self.config[section][key]
        return default

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value.

        Args:
            section: Configuration section
            key: Configuration key
            value: Value to set
        """
        if section not in self.config:
            self.config[section] = {}
        self.config[section][key] = value

    def get_katago_executable(self) -> str:
        return self.get('katago', 'executable_path', '')

    def get_katago_config(self) -> str:
        return self.get('katago', 'config_path', '')

    def get_katago_model(self) -> str:
        return self.get('katago', 'model_path', '')

    def get_katago_rules(self) -> str:
        return self.get('katago', 'rules', 'chinese')

    def get_analysis_timeout(self) -> int:
        """Get the KataGo response timeout.

        Returns:
            Timeout in seconds
        """
        return self.get('katago', 'analysis_timeout', 120)

    def get_trials(self) -> int:
        """Get the number of estimation trials.

        Returns:
            Trials, at least 1
        """
        return max(1, int(self.get('estimator', 'trials', 1000)))

    def get_tolerance(self) -> float:
        """Get the ownership tolerance.

        Returns:
            Tolerance clamped to [0, 1]
        """
        tolerance = float(self.get('estimator', 'tolerance', 0.25))
        return max(0.0, min(1.0, tolerance))

    def get_scoring_rules(self) -> ScoringRules:
        """Build scoring rules from the 'scoring' section.

        Returns:
            ScoringRules instance
        """
        return ScoringRules(
            score_stones=bool(self.get('scoring', 'score_stones', True)),
            score_prisoners=bool(self.get('scoring', 'score_prisoners', False)),
            score_territory=bool(self.get('scoring', 'score_territory', True)),
            score_territory_in_seki=bool(self.get('scoring', 'score_territory_in_seki', True)),
            komi=float(self.get('scoring', 'komi', 7.5)),
            handicap=int(self.get('scoring', 'handicap', 0))
        )

    def is_katago_configured(self) -> bool:
        """Check if KataGo is properly configured.

        Returns:
            True if all KataGo paths are set
        """
        exe = self.get_katago_executable()
        config = self.get_katago_config()
        model = self.get_katago_model()

        return bool(exe and config and model and
                   os.path.exists(exe) and
                   os.path.exists(config) and
                   os.path.exists(model))
