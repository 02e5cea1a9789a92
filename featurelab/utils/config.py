"""Configuration management for FeatureLab using pydantic-settings."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Ensure .env is loaded so ${VAR} expansion and os.environ lookups work
load_dotenv(dotenv_path=Path(".") / ".env", override=False)

OPTION_BACKENDS = ("memory", "yaml", "sql")


class AppConfig(BaseModel):
    """Core application configuration."""

    name: str = "FeatureLab"
    version: str = "0.1.0"
    data_dir: str = os.environ.get("DATA_DIR", "./data")


class ExperimentsConfig(BaseModel):
    """Experiment registry configuration."""

    register_builtin: bool = True
    # Feature name -> default state ("default", "active", "inactive" or 0/1/2)
    default_overrides: dict[str, Any] = Field(default_factory=dict)
    # Extra features registered through the features-registered hook
    extra_features: list[dict[str, Any]] = Field(default_factory=list)


class OptionsConfig(BaseModel):
    """Key-value option store configuration."""

    backend: str = "yaml"
    path: str = "./data/options.yaml"
    url: str = "sqlite:///./data/options.db"
    key_prefix: str = "elementor_"
    backup_on_write: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    file: str = "./data/logs/featurelab.log"
    max_size_mb: int = 100
    backup_count: int = 5


class WebConfig(BaseModel):
    """Admin web surface configuration."""

    host: str = "127.0.0.1"
    port: int = 8080
    admin_enabled: bool = True
    admin_username: str = "admin"
    settings_page_id: str = "tools"
    jwt_expiry_hours: int = 24


class Settings(BaseSettings):
    """Main settings class that loads from YAML and environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FEATURELAB_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppConfig = Field(default_factory=AppConfig)
    experiments: ExperimentsConfig = Field(default_factory=ExperimentsConfig)
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    admin_password: str = Field(default="admin", alias="ADMIN_PASSWORD")
    jwt_secret: str = Field(default="change-me-in-production", alias="JWT_SECRET")

    @classmethod
    def from_yaml(cls, config_path: str | Path | None = None) -> "Settings":
        """Load settings from YAML file with environment variable overrides."""
        if config_path is None:
            env_path = os.environ.get("FEATURELAB_CONFIG")
            possible_paths = [
                Path(env_path) if env_path else None,
                Path("config/settings.yaml"),
                Path("config/settings.local.yaml"),
                Path.home() / ".config/featurelab/settings.yaml",
            ]
            for path in possible_paths:
                if path is not None and path.exists():
                    config_path = path
                    break

        config_data: dict[str, Any] = {}
        if config_path and Path(config_path).exists():
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}

        config_data = cls._expand_env_vars(config_data)

        for field_name, env_var in (("admin_password", "ADMIN_PASSWORD"), ("jwt_secret", "JWT_SECRET")):
            if field_name in config_data:
                config_data[env_var] = config_data.pop(field_name)
            elif env_var in os.environ:
                config_data[env_var] = os.environ[env_var]

        try:
            instance = cls(**config_data)
        except Exception as e:
            raise ValueError(f"Invalid config: {e}") from e
        instance.validate()
        return instance

    def validate(self) -> None:
        """Validate critical config. Raises ValueError on failure."""
        errors: list[str] = []
        if not self.options.key_prefix.strip():
            errors.append("options.key_prefix must be a non-empty string")
        if self.options.backend not in OPTION_BACKENDS:
            errors.append(
                f"options.backend must be one of {', '.join(OPTION_BACKENDS)} (got {self.options.backend!r})"
            )
        if self.web.admin_enabled and not self.admin_password:
            errors.append("admin_password required when the admin surface is enabled")
        errors.extend(self._experiment_errors())
        if errors:
            raise ValueError("Config validation failed: " + "; ".join(errors))

    def _experiment_errors(self) -> list[str]:
        """Check config-declared experiments the same way the registry will."""
        # Imported here: the registry imports this module through its logger
        from ..experiments.manager import FeatureState, FeatureStatus

        errors: list[str] = []
        for feature_name, default_state in self.experiments.default_overrides.items():
            try:
                FeatureState.coerce(default_state)
            except ValueError:
                errors.append(f"experiments.default_overrides.{feature_name}: unknown state {default_state!r}")

        for i, options in enumerate(self.experiments.extra_features):
            where = f"experiments.extra_features[{i}]"
            name = options.get("name")
            if not name or not isinstance(name, str):
                errors.append(f"{where}: name is required")
            if "status" in options:
                try:
                    FeatureStatus.coerce(options["status"])
                except ValueError:
                    errors.append(f"{where}: unknown status {options['status']!r}")
            if "default" in options:
                try:
                    FeatureState.coerce(options["default"])
                except ValueError:
                    errors.append(f"{where}: unknown default {options['default']!r}")
        return errors

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in config values."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            # Expand ${VAR} patterns
            if data.startswith("${") and data.endswith("}"):
                env_var = data[2:-1]
                return os.environ.get(env_var, "")
            return data
        return data

    def ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        dirs_to_create = [
            Path(self.app.data_dir),
            Path(self.logging.file).parent,
        ]
        if self.options.backend == "yaml":
            dirs_to_create.append(Path(self.options.path).parent)
        for dir_path in dirs_to_create:
            Path(dir_path).expanduser().mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_yaml()


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
