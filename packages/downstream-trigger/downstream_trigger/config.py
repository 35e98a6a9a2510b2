"""Downstream Trigger — Host-side configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/downstream-trigger/config.yaml
    3. User config:   ~/.downstream-trigger/config.yaml
    4. Explicit config file passed to ``Settings.load()``
    5. Environment variables prefixed with DOWNSTREAM_TRIGGER_

All settings are immutable after load.  Call ``Settings.load()`` once at
host startup and pass the instance to the scheduler and engine.

Per-edge trigger policies are *not* part of these settings — they are
supplied by the host per upstream project (see ``triggers.trigger``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class SchedulerConfig(BaseModel):
    """Configuration for the per-project serialized poll scheduler."""

    default_quiet_period: Annotated[int, Field(ge=0, le=86_400)] = Field(
        default=5,
        description=(
            "Quiet period (seconds) used for asynchronously scheduled builds when "
            "the downstream project does not declare its own."
        ),
    )
    thread_name_prefix: str = Field(
        default="downstream-poll",
        description="Prefix for the single worker thread of each project queue.",
    )
    shutdown_wait: bool = Field(
        default=True,
        description="Wait for queued poll tasks to drain on scheduler shutdown.",
    )


class TriggerDefaultsConfig(BaseModel):
    """Defaults applied when a stored trigger policy omits a field.

    ``strategy`` has no default here: configurations without one predate
    strategies and are migrated to AND_HIGHER.
    """

    threshold: Literal["SUCCESS", "UNSTABLE", "FAILURE", "ABORTED"] = "SUCCESS"
    matrix_mode: Literal["NONE", "ONLY_PARENT", "ONLY_CONFIGURATIONS", "BOTH"] = "NONE"


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOWNSTREAM_TRIGGER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    defaults: TriggerDefaultsConfig = Field(default_factory=TriggerDefaultsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/downstream-trigger/config.yaml"),
            Path.home() / ".downstream-trigger" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy: only needed when a file exists

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at host startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
