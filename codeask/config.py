"""
Configuration management for codeask.

Provides default configuration, loading from .codeask/config.toml, and
provider credentials from the environment (optionally via a .env file).
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Fallback for older Python versions

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_PROMPT = (
    "You are a high-level code summarizer. Focus on what the application DOES, "
    "not how it works. Describe functionality in 2-3 sentences unless asked for "
    "more detail. Avoid listing imports, hooks or code structure. Use bullet "
    "points when listing items."
)

DEFAULT_CONFIG = {
    "indexer": {
        "exclude": [],
        "max_file_size": 5 * 1024 * 1024,  # 5MB
        "chunk_size": 2500,
        "chunk_overlap": 400,
        "max_chunks": 20,
        "min_chunk_chars": 100,
        "max_files": 200,
        "batch_size": 5,
    },
    "embeddings": {
        "provider": "local",  # "local" or "openai"
        "model": "all-MiniLM-L6-v2",
        "openai_model": "text-embedding-3-small",
        "max_input_chars": 8000,
        "timeout": 30,
    },
    "store": {
        "table_name": "code_records",
    },
    "search": {
        "top_k": 10,
    },
    "conversation": {
        "history_cap": 10,
        "system_prompt": DEFAULT_SYSTEM_PROMPT,
    },
    "generation": {
        "model": "gpt-4-turbo",
        "temperature": 0.2,
        "max_tokens": 200,
        "timeout": 60,
    },
    "performance": {
        "max_workers": 4,
        "file_timeout": 120,
    },
}

# Integer settings that must be strictly positive
_POSITIVE_INTS = [
    ("indexer", "max_file_size"),
    ("indexer", "chunk_size"),
    ("indexer", "max_chunks"),
    ("indexer", "max_files"),
    ("indexer", "batch_size"),
    ("embeddings", "max_input_chars"),
    ("search", "top_k"),
    ("conversation", "history_cap"),
    ("generation", "max_tokens"),
    ("performance", "max_workers"),
]


class Config:
    """
    Configuration manager for codeask.

    Loads configuration from .codeask/config.toml if it exists,
    otherwise uses defaults. API keys are read from the environment.
    """

    def __init__(
        self,
        project_root: Optional[Path] = None,
        env: Optional[dict[str, str]] = None,
        load_env_file: bool = True,
    ):
        """
        Initialize configuration.

        Args:
            project_root: Root directory of the project (defaults to current directory)
            env: Environment mapping to read credentials from (defaults to os.environ)
            load_env_file: Load <project_root>/.env into the process environment first
        """
        self.project_root = project_root or Path.cwd()
        self.config_path = self.project_root / ".codeask" / "config.toml"

        if env is None:
            if load_env_file:
                load_dotenv(self.project_root / ".env", override=False)
            env = dict(os.environ)
        self.env = env

        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file or use defaults."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    user_config = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError([f"cannot read {self.config_path}: {e}"]) from e
            logger.info(f"Loaded config from {self.config_path}")
            return self._merge_configs(DEFAULT_CONFIG, user_config)

        logger.debug("No config file found, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    def _merge_configs(self, default: dict, user: dict) -> dict:
        """
        Recursively merge user config with defaults.

        User values take precedence, but missing keys use defaults.
        """
        merged = copy.deepcopy(default)
        for key, value in user.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get a configuration value by nested keys.

        Examples:
            config.get("indexer", "chunk_size")
            config.get("generation", "model")

        Args:
            *keys: Nested keys to traverse
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys: str, value: Any) -> None:
        """
        Set a configuration value by nested keys.

        Args:
            *keys: Nested keys to traverse
            value: Value to set
        """
        if not keys:
            return

        current = self._config
        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    @property
    def openai_api_key(self) -> Optional[str]:
        """OpenAI API key from the environment, if set."""
        return self.env.get("OPENAI_API_KEY") or None

    def validate(self, require_generation: bool = True) -> None:
        """
        Check every required and numeric setting.

        Args:
            require_generation: Also require the credentials needed to answer
                questions (an indexing-only run with local embeddings needs none)

        Raises:
            ConfigError: Listing all problems found, not just the first one
        """
        problems = []

        needs_key = require_generation or self.get("embeddings", "provider") == "openai"
        if needs_key and not self.openai_api_key:
            problems.append("OPENAI_API_KEY is not set")

        provider = self.get("embeddings", "provider")
        if provider not in ("local", "openai"):
            problems.append(f"embeddings.provider must be 'local' or 'openai', got {provider!r}")

        if not self.get("store", "table_name"):
            problems.append("store.table_name is empty")

        for section, key in _POSITIVE_INTS:
            value = self.get(section, key)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                problems.append(f"{section}.{key} must be a positive integer, got {value!r}")

        overlap = self.get("indexer", "chunk_overlap")
        chunk_size = self.get("indexer", "chunk_size")
        if not isinstance(overlap, int) or overlap < 0:
            problems.append(f"indexer.chunk_overlap must be a non-negative integer, got {overlap!r}")
        elif isinstance(chunk_size, int) and overlap >= chunk_size:
            problems.append(
                f"indexer.chunk_overlap ({overlap}) must be smaller than indexer.chunk_size ({chunk_size})"
            )

        min_chars = self.get("indexer", "min_chunk_chars")
        if not isinstance(min_chars, int) or min_chars < 0:
            problems.append(f"indexer.min_chunk_chars must be a non-negative integer, got {min_chars!r}")

        temperature = self.get("generation", "temperature")
        if not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
            problems.append(f"generation.temperature must be between 0 and 2, got {temperature!r}")

        for section in ("embeddings", "generation", "performance"):
            key = "file_timeout" if section == "performance" else "timeout"
            value = self.get(section, key)
            if not isinstance(value, (int, float)) or value <= 0:
                problems.append(f"{section}.{key} must be a positive number, got {value!r}")

        if problems:
            raise ConfigError(problems)

    def __repr__(self) -> str:
        """String representation."""
        return f"Config(project_root={self.project_root})"
