"""Configuration management for the Lumina desktop launcher."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from lumina_desktop.exceptions import ConfigError
from lumina_desktop.probe import build_url


class AppConfig(BaseModel):
    name: str = "Lumina"
    log_level: str = "INFO"
    log_dir: str = str(Path.home() / "LuminaOutput")


class ServiceConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(default=8501, ge=1, le=65535)
    path: str = "/"
    module: str = "streamlit"
    server_subdir: str = "streamlit_app"
    entry_file: str = "lumina_app.py"
    data_subdir: str = "data"
    extra_args: list[str] = Field(
        default_factory=lambda: ["--browser.gatherUsageStats=false"]
    )
    # Forwarded verbatim to the service process
    env: dict[str, str] = Field(default_factory=dict)
    dotenv_files: list[str] = Field(default_factory=lambda: [".env"])

    @property
    def url(self) -> str:
        return build_url(self.host, self.port, self.path)


class ProbeConfig(BaseModel):
    interval_seconds: float = Field(default=2.0, gt=0)
    timeout_seconds: float = Field(default=1.5, gt=0)
    max_attempts: int = Field(default=30, ge=1)

    @model_validator(mode="after")
    def _timeout_below_interval(self) -> ProbeConfig:
        if self.timeout_seconds >= self.interval_seconds:
            raise ValueError(
                "probe.timeout_seconds must be shorter than probe.interval_seconds"
            )
        return self


class RuntimeConfig(BaseModel):
    candidates: list[str] = Field(default_factory=lambda: ["python", "python3", "py"])
    version_timeout: float = Field(default=5.0, gt=0)
    module_timeout: float = Field(default=10.0, gt=0)


class ShutdownConfig(BaseModel):
    grace_seconds: float = Field(default=5.0, ge=0)


class WindowConfig(BaseModel):
    title: str = "Lumina"
    width: int = 1500
    height: int = 800
    min_size: tuple[int, int] = (960, 640)


class Config(BaseSettings):
    """Launcher configuration loaded from env vars and config file."""

    app: AppConfig = Field(default_factory=AppConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    shutdown: ShutdownConfig = Field(default_factory=ShutdownConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)

    model_config = {
        "env_prefix": "LUMINA_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Config:
        """Load configuration from YAML file and environment variables."""
        config_path = config_path or os.getenv("LUMINA_CONFIG", "./config.yaml")

        file_config = {}
        config_file = Path(config_path)
        if config_file.exists():
            try:
                with open(config_file) as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Cannot parse {config_file}: {exc}") from exc
            if not isinstance(file_config, dict):
                raise ConfigError(f"{config_file} must contain a mapping")

        try:
            return cls(**file_config)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
