"""Simple YAML configuration loader for livescribe."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
import logging

from ..models.session import SessionConfig, LOCALE_TAGS, DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

PROVIDER_KINDS = ("streaming", "openai", "mistral", "elevenlabs")

API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "elevenlabs": "ELEVENLABS_API_KEY",
}

DEFAULTS = {
    "session.provider": "streaming",
    "session.language": DEFAULT_LANGUAGE,
    "session.debounce_ms": 1500,
    "session.chunk_interval_ms": 5000,
    "session.restart_backoff_ms": 1000,
    "session.settle_delay_ms": 250,
    "audio.sample_rate": 16000,
    "audio.chunk_size": 1600,
    "audio.channels": 1,
}


class LivescribeConfig:
    """livescribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, an empty configuration
                        is used and every value falls back to its default.
        """
        if config_path is None:
            self.config_file = None
            self.config: Dict[str, Any] = {}
            logger.info("No configuration file given, using defaults")
            return

        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()
        self._validate()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        creds = config.get('credentials') or {}
        if creds.get('google_credentials_path'):
            creds_path = creds['google_credentials_path']
            if not os.path.isabs(creds_path):
                creds['google_credentials_path'] = str(config_dir / creds_path)

        log_config = config.get('logging') or {}
        if log_config.get('file_path'):
            log_path = log_config['file_path']
            if not os.path.isabs(log_path):
                log_config['file_path'] = str(config_dir / log_path)

    def _validate(self) -> None:
        provider = self.get('session.provider')
        if provider not in PROVIDER_KINDS:
            raise ValueError(f"Unknown transcription provider '{provider}', expected one of {PROVIDER_KINDS}")
        language = self.get('session.language')
        if language not in LOCALE_TAGS:
            raise ValueError(f"Unsupported language '{language}', expected one of {tuple(LOCALE_TAGS)}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'session.language').

        Falls back to the built-in default for the key, then to `default`.
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return DEFAULTS.get(key_path, default)

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_seconds(self, key_path: str) -> float:
        """Get a millisecond setting (e.g. 'session.debounce_ms') as seconds."""
        value = self.get(key_path)
        if value is None:
            raise ValueError(f"No value or default for '{key_path}'")
        return float(value) / 1000.0

    def get_session_config(self) -> SessionConfig:
        return SessionConfig(
            provider=self.get('session.provider'),
            language=self.get('session.language'),
        )

    def get_api_key(self, provider: str) -> str:
        """API key for an HTTP/WebSocket provider; empty string when not configured."""
        key = self.get(f'credentials.{provider}_api_key')
        if not key:
            env_var = API_KEY_ENV_VARS.get(provider)
            key = os.environ.get(env_var, "") if env_var else ""
        return key.strip()

    def get_google_credentials_path(self) -> Optional[str]:
        """Absolute Google credentials path, or None when not configured or missing."""
        creds_path = self.get('credentials.google_credentials_path')
        if not creds_path:
            return None

        creds_file = Path(creds_path)
        if not creds_file.exists():
            logger.warning(f"Google credentials file not found: {creds_path}")
            return None

        return str(creds_file.absolute())

    def get_triggers(self) -> List[Dict[str, str]]:
        """Configured trigger phrases, in priority order."""
        triggers = self.get('triggers', []) or []
        for trigger in triggers:
            if not trigger.get('phrase'):
                raise ValueError(f"Trigger without a phrase: {trigger}")
        return triggers

    def get_keywords(self) -> List[str]:
        return list(self.get('keywords', []) or [])
