"""Downstream Trigger — Exception hierarchy.

All exceptions raised by the package inherit from DownstreamTriggerError so
that host code can catch the full family with a single except clause.

Hierarchy:
    DownstreamTriggerError
    ├── ConfigurationError
    │   ├── InvalidConfigurationError
    │   └── MigrationError
    ├── TriggerError
    │   ├── PollFailedError
    │   └── SchedulingError
    └── GraphError
        └── UnknownProjectError
"""

from __future__ import annotations

from typing import Any


class DownstreamTriggerError(Exception):
    """Base exception for all downstream-trigger errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(DownstreamTriggerError):
    """Base for errors raised while loading trigger configuration."""


class InvalidConfigurationError(ConfigurationError):
    """A trigger policy could not be constructed from its configuration.

    Raised for unknown threshold / strategy / matrix mode strings and for
    any pydantic validation failure.  Never replaced by a silent default.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, context={"field": field, "validation_errors": errors or []})
        self.field = field
        self.errors = errors or []


class MigrationError(ConfigurationError):
    """No migration path exists for a stored configuration version."""

    def __init__(self, from_version: int, to_version: int) -> None:
        super().__init__(
            f"No migration path from config_version {from_version} to {to_version}",
            context={"from_version": from_version, "to_version": to_version},
        )
        self.from_version = from_version
        self.to_version = to_version


# ---------------------------------------------------------------------------
# Triggering
# ---------------------------------------------------------------------------


class TriggerError(DownstreamTriggerError):
    """Base for errors raised while deciding or scheduling a downstream build."""


class PollFailedError(TriggerError):
    """A live SCM poll of a downstream project failed.

    Distinct from "no changes": the caller decides what a failed poll means.
    """

    def __init__(self, project: str, reason: str) -> None:
        super().__init__(
            f"SCM poll of '{project}' failed: {reason}",
            context={"project": project, "reason": reason},
        )
        self.project = project
        self.reason = reason


class SchedulingError(TriggerError):
    """The host refused or failed a schedule request."""

    def __init__(self, project: str, reason: str) -> None:
        super().__init__(
            f"Cannot schedule build of '{project}': {reason}",
            context={"project": project, "reason": reason},
        )
        self.project = project
        self.reason = reason


# ---------------------------------------------------------------------------
# Dependency graph
# ---------------------------------------------------------------------------


class GraphError(DownstreamTriggerError):
    """Base for dependency graph errors."""


class UnknownProjectError(GraphError):
    """A project identity is not present in the dependency graph."""

    def __init__(self, project: str) -> None:
        super().__init__(f"Unknown project: '{project}'", context={"project": project})
        self.project = project
