"""
Percento Configuration - Layered YAML settings validated with pydantic.

Two files feed one PercentoConfig:

    ~/.percento/config.yaml     global, per user
    .percento/config.yaml       local, found by walking up from the cwd

Local values are deep-merged over global ones. Validation happens lazily
on first access to Config.merged and fails with ConfigError.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError

CONFIG_FILE = "config.yaml"


class ConfigError(Exception):
    """Raised when a config file cannot be read or does not validate."""


class ProviderConfig(BaseModel):
    """Credentials and endpoint for one LLM provider."""

    api_key: Optional[str] = None
    api_base: Optional[str] = None
    enabled: bool = True


class AIConfig(BaseModel):
    """Word-problem extraction settings."""

    model: str = "google/gemini-2.0-flash"
    max_tokens: int = Field(default=1024, gt=0)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    timeout: int = Field(default=60, gt=0)


class HistoryConfig(BaseModel):
    capacity: int = Field(default=10, ge=1)


class DisplayConfig(BaseModel):
    decimals: int = Field(default=2, ge=0, le=10)


class PercentoConfig(BaseModel):
    """Complete Percento configuration schema."""

    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)
    ai: AIConfig = Field(default_factory=AIConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)


class Config:
    """
    Percento configuration manager.

    Holds the raw global and local dictionaries, so a save() writes back
    only what each layer actually set.

    Example:
        >>> config = Config.load()
        >>> config.merged.history.capacity
        10
        >>> config.set_model("openai/gpt-4o-mini", global_=True)
        >>> config.save()
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".percento"
    LOCAL_CONFIG_DIR = Path(".percento")

    # Checked in order after the config file's api_key.
    ENV_API_KEYS: Dict[str, Tuple[str, ...]] = {
        "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
        "openai": ("OPENAI_API_KEY",),
        "anthropic": ("ANTHROPIC_API_KEY",),
        "openrouter": ("OPENROUTER_API_KEY",),
        "groq": ("GROQ_API_KEY",),
    }

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
        local_path: Optional[Path] = None,
    ):
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self.local_path = local_path
        self._merged: Optional[PercentoConfig] = None

    @classmethod
    def global_path(cls) -> Path:
        return cls.GLOBAL_CONFIG_DIR / CONFIG_FILE

    @classmethod
    def load(cls) -> "Config":
        """
        Read the global file and the nearest local file.

        Missing files count as empty.

        Raises:
            ConfigError: If a file exists but is not a YAML mapping.
        """
        local_path = cls._find_local_config()
        return cls(
            global_config=cls._load_yaml(cls.global_path()),
            local_config=cls._load_yaml(local_path),
            local_path=local_path,
        )

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        if path is None or not path.exists():
            return {}

        try:
            data = yaml.safe_load(path.read_text())
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @classmethod
    def _find_local_config(cls) -> Optional[Path]:
        """Nearest .percento/config.yaml in the cwd or one of its parents."""
        for directory in (Path.cwd(), *Path.cwd().parents):
            candidate = directory / cls.LOCAL_CONFIG_DIR / CONFIG_FILE
            if candidate.exists():
                return candidate
        return None

    def get_merged_config(self) -> Dict[str, Any]:
        return self._deep_merge(self._global_config, self._local_config)

    @property
    def merged(self) -> PercentoConfig:
        """The validated merge of both layers, cached until the next change."""
        if self._merged is None:
            try:
                self._merged = PercentoConfig.model_validate(self.get_merged_config())
            except ValidationError as e:
                raise ConfigError(f"Invalid configuration: {e}") from e
        return self._merged

    def get_model(self) -> str:
        return self.merged.ai.model

    def set_model(self, model_name: str, global_: bool = False) -> None:
        """Set the extraction model in the global or the local layer."""
        layer = self._global_config if global_ else self._local_config
        layer.setdefault("ai", {})["model"] = model_name
        self._merged = None

    def get_provider_config(self, provider_name: str) -> Optional[ProviderConfig]:
        return self.merged.providers.get(provider_name)

    def get_api_key(self, provider_name: str) -> Optional[str]:
        """API key from the config file, else from the provider's env vars."""
        provider = self.get_provider_config(provider_name)
        if provider and provider.api_key:
            return provider.api_key

        return next(
            (os.environ[var] for var in self.ENV_API_KEYS.get(provider_name, ()) if os.environ.get(var)),
            None,
        )

    def save(self) -> None:
        """
        Write both layers back to disk.

        A local layer with content and no file yet is written to
        .percento/config.yaml under the cwd.
        """
        self._write_yaml(self.global_path(), self._global_config)

        if self._local_config:
            if self.local_path is None:
                self.local_path = Path.cwd() / self.LOCAL_CONFIG_DIR / CONFIG_FILE
            self._write_yaml(self.local_path, self._local_config)

    @staticmethod
    def _write_yaml(path: Path, data: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))

    @staticmethod
    def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override into a copy of base."""
        result = dict(base)
        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def create_default_global(cls) -> Path:
        """Write the default global config unless one exists."""
        path = cls.global_path()
        if path.exists():
            return path

        defaults = PercentoConfig(
            providers={
                "google": ProviderConfig(),
                "openai": ProviderConfig(),
                "anthropic": ProviderConfig(),
                "ollama": ProviderConfig(api_base="http://localhost:11434", enabled=False),
            }
        )
        cls._write_yaml(path, defaults.model_dump())
        return path
