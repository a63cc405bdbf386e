"""
Configuration management system for Sleeper MCP Server.

This module provides flexible configuration management with support for:
- Environment variables
- Configuration files (YAML/JSON)
- Configuration validation
- Hot-reloading
"""

import os
import json
import logging
import yaml
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, field
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler
import httpx
from pydantic import BaseModel, ValidationError, Field, field_validator

logger = logging.getLogger(__name__)

REFERENCE_BACKENDS = ("file", "redis")


@dataclass
class TimeoutConfig:
    """HTTP timeout configuration."""
    total: float = 30.0
    connect: float = 10.0


@dataclass
class LongTimeoutConfig:
    """Long HTTP timeout configuration for the full player directory fetch."""
    total: float = 60.0
    connect: float = 15.0


@dataclass
class ServerConfig:
    """Server configuration."""
    version: str = "0.2.0"
    host: str = "0.0.0.0"
    port: int = 9000
    base_user_agent: str = field(init=False)

    def __post_init__(self):
        self.base_user_agent = f"Sleeper-MCP-Server/{self.version}"


@dataclass
class UpstreamConfig:
    """Sleeper API location."""
    base_url: str = "https://api.sleeper.app/v1"


@dataclass
class ReferenceConfig:
    """Player directory persistence."""
    backend: str = "file"
    cache_dir: str = ".cache"
    redis_url: str = "redis://localhost:6379/0"
    file_freshness_hours: float = 24.0
    redis_freshness_hours: float = 4.0
    default_domain: str = "nfl"


@dataclass
class EnrichmentConfig:
    """Response enrichment switches."""
    enabled: bool = True
    fetch_directory_on_miss: bool = True


@dataclass
class ValidationLimits:
    """Parameter validation limits."""
    week_min: int = 1
    week_max: int = 22
    round_min: int = 1
    round_max: int = 18
    trending_lookback_min: int = 1
    trending_lookback_max: int = 168
    trending_limit_min: int = 1
    trending_limit_max: int = 100
    player_search_min: int = 1
    player_search_max: int = 100
    player_search_default: int = 10
    player_list_min: int = 1
    player_list_max: int = 500
    player_list_default: int = 50


@dataclass
class SecurityConfig:
    """Security configuration."""
    max_string_length: int = 1000


class ConfigurationModel(BaseModel):
    """Pydantic model for configuration validation."""
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    long_timeout: LongTimeoutConfig = Field(default_factory=LongTimeoutConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    reference: ReferenceConfig = Field(default_factory=ReferenceConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    limits: ValidationLimits = Field(default_factory=ValidationLimits)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("reference")
    @classmethod
    def _check_reference(cls, reference: ReferenceConfig) -> ReferenceConfig:
        if reference.backend.lower() not in REFERENCE_BACKENDS:
            raise ValueError(f"backend must be one of {', '.join(REFERENCE_BACKENDS)}")
        if reference.file_freshness_hours <= 0 or reference.redis_freshness_hours <= 0:
            raise ValueError("freshness windows must be positive")
        reference.backend = reference.backend.lower()
        reference.default_domain = reference.default_domain.lower()
        return reference

    @field_validator("limits")
    @classmethod
    def _check_limits(cls, limits: ValidationLimits) -> ValidationLimits:
        for prefix in ("week", "round", "trending_lookback", "trending_limit", "player_search", "player_list"):
            low, high = getattr(limits, f"{prefix}_min"), getattr(limits, f"{prefix}_max")
            if low > high:
                raise ValueError(f"{prefix}_min ({low}) exceeds {prefix}_max ({high})")
        return limits


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for configuration hot-reloading."""

    def __init__(self, config_manager: 'ConfigManager'):
        self.config_manager = config_manager
        super().__init__()

    def on_modified(self, event):
        if not event.is_directory and event.src_path == str(self.config_manager.config_file_path):
            logger.info(f"Configuration file {event.src_path} modified, reloading...")
            self.config_manager.reload_configuration()


class ConfigManager:
    """
    Flexible configuration manager supporting environment variables,
    configuration files, validation, and hot-reloading.
    """

    # Environment variable -> (section, key, converter)
    ENV_MAPPINGS = {
        'SLEEPER_MCP_TIMEOUT_TOTAL': ('timeout', 'total', float),
        'SLEEPER_MCP_TIMEOUT_CONNECT': ('timeout', 'connect', float),
        'SLEEPER_MCP_LONG_TIMEOUT_TOTAL': ('long_timeout', 'total', float),
        'SLEEPER_MCP_LONG_TIMEOUT_CONNECT': ('long_timeout', 'connect', float),

        'SLEEPER_MCP_SERVER_VERSION': ('server', 'version', str),
        'SLEEPER_MCP_HOST': ('server', 'host', str),
        'SLEEPER_MCP_PORT': ('server', 'port', int),

        'SLEEPER_MCP_BASE_URL': ('upstream', 'base_url', str),

        'SLEEPER_MCP_REFERENCE_BACKEND': ('reference', 'backend', str),
        'SLEEPER_MCP_CACHE_DIR': ('reference', 'cache_dir', str),
        'SLEEPER_MCP_REDIS_URL': ('reference', 'redis_url', str),
        'SLEEPER_MCP_FILE_FRESHNESS_HOURS': ('reference', 'file_freshness_hours', float),
        'SLEEPER_MCP_REDIS_FRESHNESS_HOURS': ('reference', 'redis_freshness_hours', float),
        'SLEEPER_MCP_DEFAULT_SPORT': ('reference', 'default_domain', str),

        'SLEEPER_MCP_ENRICHMENT_ENABLED': ('enrichment', 'enabled', _parse_bool),
        'SLEEPER_MCP_ENRICHMENT_FETCH_ON_MISS': ('enrichment', 'fetch_directory_on_miss', _parse_bool),

        'SLEEPER_MCP_WEEK_MIN': ('limits', 'week_min', int),
        'SLEEPER_MCP_WEEK_MAX': ('limits', 'week_max', int),
        'SLEEPER_MCP_ROUND_MIN': ('limits', 'round_min', int),
        'SLEEPER_MCP_ROUND_MAX': ('limits', 'round_max', int),
        'SLEEPER_MCP_TRENDING_LOOKBACK_MAX': ('limits', 'trending_lookback_max', int),
        'SLEEPER_MCP_TRENDING_LIMIT_MAX': ('limits', 'trending_limit_max', int),
        'SLEEPER_MCP_PLAYER_SEARCH_MAX': ('limits', 'player_search_max', int),
        'SLEEPER_MCP_PLAYER_LIST_MAX': ('limits', 'player_list_max', int),

        'SLEEPER_MCP_MAX_STRING_LENGTH': ('security', 'max_string_length', int),
    }

    def __init__(self, config_file: Optional[Union[str, Path]] = None, enable_hot_reload: bool = True):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            enable_hot_reload: Whether to enable hot-reloading of configuration files
        """
        self.config_file_path = Path(config_file) if config_file else None
        self.enable_hot_reload = enable_hot_reload
        self._config_lock = threading.RLock()
        self._observer = None
        self._config: Optional[ConfigurationModel] = None

        self.load_configuration()

        if self.enable_hot_reload and self.config_file_path and self.config_file_path.exists():
            self._setup_hot_reload()

    def _setup_hot_reload(self):
        """Set up file system monitoring for hot-reloading."""
        if self._observer:
            self._observer.stop()
            self._observer.join()

        self._observer = Observer()
        event_handler = ConfigFileHandler(self)
        self._observer.schedule(event_handler, str(self.config_file_path.parent), recursive=False)
        self._observer.start()

    def load_configuration(self):
        """Load configuration from environment variables and config file."""
        with self._config_lock:
            config_dict = {}

            if self.config_file_path and self.config_file_path.exists():
                config_dict = self._load_config_file()

            config_dict = self._load_environment_variables(config_dict)

            try:
                self._config = ConfigurationModel(**config_dict)
            except ValidationError as e:
                raise ValueError(f"Configuration validation failed: {e}")

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        try:
            with open(self.config_file_path, 'r') as f:
                if self.config_file_path.suffix.lower() in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif self.config_file_path.suffix.lower() == '.json':
                    return json.load(f)
                else:
                    raise ValueError(f"Unsupported configuration file format: {self.config_file_path.suffix}")
        except Exception as e:
            raise ValueError(f"Failed to load configuration file {self.config_file_path}: {e}")

    def _load_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        for env_var, (section, key, type_converter) in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    if section not in config_dict:
                        config_dict[section] = {}
                    config_dict[section][key] = type_converter(env_value)
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for environment variable {env_var}: {env_value} ({e})")

        return config_dict

    def reload_configuration(self):
        """Reload configuration from file and environment variables."""
        try:
            self.load_configuration()
            logger.info("Configuration reloaded successfully")
        except Exception as e:
            logger.error(f"Failed to reload configuration: {e}")

    @property
    def config(self) -> ConfigurationModel:
        """Get the current configuration."""
        with self._config_lock:
            if self._config is None:
                raise RuntimeError("Configuration not loaded")
            return self._config

    def get_http_timeout(self) -> httpx.Timeout:
        """Get HTTP timeout configuration."""
        timeout_config = self.config.timeout
        return httpx.Timeout(timeout_config.total, connect=timeout_config.connect)

    def get_long_http_timeout(self) -> httpx.Timeout:
        """Get long HTTP timeout configuration."""
        timeout_config = self.config.long_timeout
        return httpx.Timeout(timeout_config.total, connect=timeout_config.connect)

    def get_user_agent(self, service_name: str = None) -> str:
        """Get user agent string for a service."""
        base_agent = self.config.server.base_user_agent
        if service_name:
            service_descriptions = {
                "sleeper_api": "Sleeper API Fetcher",
                "sleeper_players": "Sleeper Player Directory Fetcher",
            }
            description = service_descriptions.get(service_name, "Generic Service")
            return f"{base_agent} ({description})"
        return base_agent

    def get_limits_dict(self) -> Dict[str, int]:
        """Get validation limits as a plain dictionary."""
        limits = self.config.limits
        return {name: getattr(limits, name) for name in limits.__dataclass_fields__}

    def stop(self):
        """Stop the configuration manager and clean up resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join()


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        config_paths = [
            Path("config.yml"),
            Path("config.yaml"),
            Path("config.json"),
            Path("/etc/sleeper-mcp/config.yml"),
            Path("/etc/sleeper-mcp/config.yaml"),
            Path("/etc/sleeper-mcp/config.json"),
        ]

        config_file = None
        for path in config_paths:
            if path.exists():
                config_file = path
                break

        _config_manager = ConfigManager(config_file)

    return _config_manager


def set_config_manager(config_manager: ConfigManager):
    """Set the global configuration manager instance."""
    global _config_manager
    if _config_manager:
        _config_manager.stop()
    _config_manager = config_manager
