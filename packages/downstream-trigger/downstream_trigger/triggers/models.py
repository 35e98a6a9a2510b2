"""Trigger data models.

Key classes
-----------
Result          — ordered build outcome (SUCCESS < UNSTABLE < FAILURE < ABORTED)
Strategy        — how a build result is compared with the threshold
MatrixMode      — which edges a matrix upstream contributes
TriggerPolicy   — immutable per-edge configuration (the persisted unit)
UpstreamCause   — provenance attached to a scheduled downstream build
PollTask        — deferred poll-and-maybe-trigger unit for one downstream project
Decision        — outcome of evaluating one edge for one completed build

Configuration quick-reference (boundary form)
---------------------------------------------
child_projects              str | list  — "api-tests, deploy-staging"
threshold                   str         — SUCCESS | UNSTABLE | FAILURE | ABORTED
strategy                    str         — AND_HIGHER | EXACT | AND_LOWER
only_if_downstream_changes  bool        — poll downstream SCM before triggering
only_if_local_changes       bool        — require changes in the upstream build
matrix_mode                 str         — NONE | ONLY_PARENT | ONLY_CONFIGURATIONS | BOTH
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from downstream_trigger.exceptions import InvalidConfigurationError

if TYPE_CHECKING:
    from downstream_trigger.host import Project

# Current stored configuration shape.  See triggers/migration.py.
CONFIG_VERSION = 3


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Result(str, Enum):
    """Build outcome.  Lower ordinal is better."""

    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"

    @property
    def ordinal(self) -> int:
        return _RESULT_ORDINALS[self]

    def is_better_or_equal_to(self, other: Result) -> bool:
        return self.ordinal <= other.ordinal

    def is_worse_or_equal_to(self, other: Result) -> bool:
        return self.ordinal >= other.ordinal

    @classmethod
    def from_string(cls, value: str) -> Result:
        """Parse *value* strictly.

        Only the exact upper-case names are accepted; anything else raises
        :class:`InvalidConfigurationError` instead of mapping to FAILURE.
        """
        try:
            return cls(value)
        except ValueError:
            raise InvalidConfigurationError(
                f"Unknown result type '{value}'", field="threshold"
            ) from None


_RESULT_ORDINALS: dict[Result, int] = {
    Result.SUCCESS: 0,
    Result.UNSTABLE: 1,
    Result.FAILURE: 2,
    Result.ABORTED: 3,
}


class Strategy(str, Enum):
    """Comparison rule between the threshold and the actual build result."""

    AND_HIGHER = "AND_HIGHER"
    EXACT = "EXACT"
    AND_LOWER = "AND_LOWER"

    @property
    def display_name(self) -> str:
        return _STRATEGY_DISPLAY_NAMES[self]

    def evaluate(self, threshold: Result, actual: Result) -> bool:
        from downstream_trigger.triggers.strategy import evaluate

        return evaluate(self, threshold, actual)


_STRATEGY_DISPLAY_NAMES: dict[Strategy, str] = {
    Strategy.AND_HIGHER: "equal or over",
    Strategy.EXACT: "equal",
    Strategy.AND_LOWER: "equal or under",
}


class MatrixMode(str, Enum):
    """When to trigger downstream builds for a matrix (multi-configuration) upstream.

    NONE behaves like ONLY_PARENT for edge expansion but never installs the
    end-of-run hook; it is the value for plain jobs.
    """

    NONE = "NONE"
    ONLY_PARENT = "ONLY_PARENT"
    ONLY_CONFIGURATIONS = "ONLY_CONFIGURATIONS"
    BOTH = "BOTH"

    @property
    def description(self) -> str:
        return _MATRIX_MODE_DESCRIPTIONS[self]

    @property
    def includes_configurations(self) -> bool:
        return self in (MatrixMode.ONLY_CONFIGURATIONS, MatrixMode.BOTH)

    @property
    def triggers_on_parent_end(self) -> bool:
        return self in (MatrixMode.ONLY_PARENT, MatrixMode.BOTH)


_MATRIX_MODE_DESCRIPTIONS: dict[MatrixMode, str] = {
    MatrixMode.NONE: "Not a matrix trigger",
    MatrixMode.ONLY_PARENT: "Trigger only the parent job",
    MatrixMode.ONLY_CONFIGURATIONS: "Trigger for each configuration",
    MatrixMode.BOTH: "Trigger for parent and each configuration",
}


class Decision(str, Enum):
    """Outcome of evaluating one dependency edge."""

    TRIGGER = "trigger"
    SKIP = "skip"
    DEFERRED_ASYNC = "deferred_async"


# ---------------------------------------------------------------------------
# Project name lists
# ---------------------------------------------------------------------------


def split_project_names(value: str) -> tuple[str, ...]:
    """Split a comma-delimited project list, trimming and dropping blanks."""
    return tuple(name.strip() for name in value.split(",") if name.strip())


def join_project_names(names: tuple[str, ...] | list[str]) -> str:
    return ",".join(names)


# ---------------------------------------------------------------------------
# TriggerPolicy
# ---------------------------------------------------------------------------


class TriggerPolicy(BaseModel):
    """Immutable configuration governing one upstream's downstream edges."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    child_projects: tuple[str, ...] = Field(
        description="Ordered downstream project names, resolved lazily against the owner's group.",
    )
    threshold: Result = Result.SUCCESS
    strategy: Strategy = Strategy.AND_HIGHER
    only_if_downstream_changes: bool = False
    only_if_local_changes: bool = False
    matrix_mode: MatrixMode = MatrixMode.NONE
    config_version: int = CONFIG_VERSION

    @field_validator("child_projects", mode="before")
    @classmethod
    def split_child_projects(cls, v: object) -> object:
        if v is None:
            raise InvalidConfigurationError("child_projects is required", field="child_projects")
        if isinstance(v, str):
            return split_project_names(v)
        if isinstance(v, (list, tuple)):
            return tuple(str(name).strip() for name in v if str(name).strip())
        return v

    @field_validator("threshold", mode="before")
    @classmethod
    def parse_threshold(cls, v: object) -> object:
        if isinstance(v, str):
            return Result.from_string(v)
        return v

    @property
    def child_projects_value(self) -> str:
        """The comma-delimited form stored by the host."""
        return join_project_names(self.child_projects)

    def with_renamed_project(self, old_name: str, new_name: str) -> tuple[TriggerPolicy, bool]:
        """Return a copy with *old_name* replaced by *new_name*, and whether anything changed."""
        if old_name not in self.child_projects:
            return self, False
        renamed = tuple(new_name if name == old_name else name for name in self.child_projects)
        return self.model_copy(update={"child_projects": renamed}), True

    def to_config(self) -> dict[str, Any]:
        """Serialise to the boundary form accepted by ``TriggerPolicy.model_validate``."""
        return {
            "config_version": self.config_version,
            "child_projects": self.child_projects_value,
            "threshold": self.threshold.value,
            "strategy": self.strategy.value,
            "only_if_downstream_changes": self.only_if_downstream_changes,
            "only_if_local_changes": self.only_if_local_changes,
            "matrix_mode": self.matrix_mode.value,
        }


# ---------------------------------------------------------------------------
# Provenance and deferred work
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpstreamCause:
    """Why a downstream build was started: the upstream build that finished."""

    upstream_project: str
    upstream_build: int
    upstream_url: str | None = None

    @property
    def short_description(self) -> str:
        return f"Started by upstream project \"{self.upstream_project}\" build number {self.upstream_build}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "upstream_project": self.upstream_project,
            "upstream_build": self.upstream_build,
            "upstream_url": self.upstream_url,
        }


# Only one cause kind exists today; hosts type against the alias.
Cause = UpstreamCause


@dataclass
class PollTask:
    """A queued poll-and-maybe-trigger unit bound to one downstream project.

    Created when an edge defers to asynchronous polling, consumed exactly
    once by that project's queue.
    """

    project: Project
    cause: UpstreamCause
    actions: tuple[Any, ...] = ()
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: float = field(default_factory=time.time)

    @property
    def project_identity(self) -> str:
        return self.project.identity
