"""Configuration management for httpbench."""

import yaml
from typing import Any, Dict, Optional, Union
from pathlib import Path
from dataclasses import dataclass
from urllib.parse import urlsplit
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_PORTS = {"http": 80, "https": 443}


class InvalidTargetError(ValueError):
    """Target URL cannot be benchmarked."""
    pass


@dataclass(frozen=True)
class Target:
    """Connection coordinates derived from the target URL."""
    scheme: str
    hostname: str
    port: int
    path: str

    @classmethod
    def parse(cls, raw_url: str) -> "Target":
        """Parse an absolute http(s) URL.

        Raises:
            InvalidTargetError: scheme, host or port is unusable
        """
        parts = urlsplit(raw_url)
        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS:
            raise InvalidTargetError(f"{raw_url}: unsupported scheme '{parts.scheme}'")
        if not parts.hostname:
            raise InvalidTargetError(f"{raw_url}: missing host")

        try:
            port = parts.port
        except ValueError as e:
            raise InvalidTargetError(f"{raw_url}: {e}") from e

        return cls(
            scheme=scheme,
            hostname=parts.hostname,
            port=port if port is not None else DEFAULT_PORTS[scheme],
            path=parts.path or "/"
        )


class BenchmarkConfig(BaseModel):
    """Settings of one benchmark run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(..., description="Target URL")
    requests: int = Field(1, ge=1, description="Number of requests to perform")
    concurrency: int = Field(1, ge=1, description="Number of requests in flight at a time")
    keep_alive: bool = Field(alias="keepAlive", default=False, description="Reuse connections")
    verbosity: int = Field(0, ge=0, description="How much troubleshooting info to print")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        Target.parse(v)
        return v

    @model_validator(mode='after')
    def check_requests_cover_concurrency(self):
        if self.requests < self.concurrency:
            raise ValueError(
                f"requests ({self.requests}) must not be lower than concurrency ({self.concurrency})"
            )
        return self

    @property
    def target(self) -> Target:
        return Target.parse(self.url)


class ConfigLoader:
    """Configuration loader utility."""

    @staticmethod
    def load_benchmark(
        file_path: Union[str, Path],
        overrides: Optional[Dict[str, Any]] = None
    ) -> BenchmarkConfig:
        """Load benchmark configuration from YAML file.

        Args:
            file_path: YAML mapping of settings, camelCase or snake_case keys
            overrides: Settings by field name that replace the file's values
        """
        data = ConfigLoader.load_raw(file_path)
        for name, field in BenchmarkConfig.model_fields.items():
            if field.alias and field.alias in data:
                data[name] = data.pop(field.alias)
        data.update(overrides or {})
        return BenchmarkConfig(**data)

    @staticmethod
    def load_raw(file_path: Union[str, Path]) -> dict:
        """Load an unvalidated settings mapping."""
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{file_path}: expected a mapping at top level")
        return data

    @staticmethod
    def save_config(config: BaseModel, file_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        with open(file_path, 'w', encoding='utf-8') as f:
            data = config.model_dump(by_alias=True, exclude_none=True)
            yaml.dump(data, f, default_flow_style=False, indent=2)
