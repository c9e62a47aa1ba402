"""
Pool configuration.

Settings can be built in code or read from the environment, e.g.::

    HOSTPOOL_HOSTS='[{"url": "http://influx1:8086"}, {"url": "https://influx2:8086", "options": {"verify": false}}]'
    HOSTPOOL_TIMEOUT=5
    HOSTPOOL_BACKOFF__MAX=30
"""
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .backoff import ExponentialBackoff


class BackoffConfig(BaseModel):
    initial: float = Field(default=0.3, gt=0)
    max: float = Field(default=10.0, gt=0)
    jitter: float = Field(default=0.5, ge=0, le=1)

    @model_validator(mode="after")
    def _check_ceiling(self) -> "BackoffConfig":
        if self.max < self.initial:
            raise ValueError(f"max ({self.max}) must be >= initial ({self.initial})")
        return self

    def build(self) -> ExponentialBackoff:
        return ExponentialBackoff(initial=self.initial, max=self.max, jitter=self.jitter)


class HostConfig(BaseModel):
    url: str
    # passed to httpx.AsyncClient as-is (verify, cert, headers, ...)
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"host url must start with http:// or https://, got {v!r}")
        return v.rstrip("/")


class PoolSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOSTPOOL_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    hosts: list[HostConfig] = Field(default_factory=list)
    timeout: float = Field(default=10.0, gt=0)
    backoff: BackoffConfig = Field(default_factory=BackoffConfig)
