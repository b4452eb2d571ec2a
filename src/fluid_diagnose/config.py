"""Configuration and environment for fluid-diagnose."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Diagnostic settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="FLUID_DIAGNOSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")
    namespace: str = Field(default="default", description="Namespace of the dataset")
    request_timeout: float | None = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds passed to the Kubernetes client",
    )

    # Collection
    log_tail_lines: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Number of log lines to tail per captured container",
    )
    max_failing_fuse_logs: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Max number of failing fuse pods whose logs are captured",
    )

    # Analysis
    restart_threshold: int = Field(
        default=3,
        ge=0,
        description="Pods restarting more often than this are reported",
    )

    # Output
    output: Literal["text", "json"] = Field(
        default="text",
        description="Output format: text report or AI-ready JSON context",
    )


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
