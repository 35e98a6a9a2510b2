"""Trigger policy configuration — versioned migration registry.

Stored trigger configurations outlive the code that wrote them.  This module
upgrades a raw configuration mapping to the current ``CONFIG_VERSION`` once,
at load time, before it is validated into a :class:`TriggerPolicy`.

Versioning policy:
  - Each migration is a pure function: dict → dict.  Migrations must not
    mutate their input; they return a new dict.
  - A configuration without ``config_version`` is treated as version 1.
    Every migration only fills or rewrites fields that are missing or in
    their legacy shape, so running the full chain on a newer config that
    simply lacks the version key is harmless.
  - Configurations from a *newer* version than this code knows are rejected.

Current migrations:
  - 1 → 2: configs written before threshold strategies existed get
    ``strategy = AND_HIGHER`` (the only behaviour those versions had).
  - 2 → 3: the legacy ``trigger_only_once_when_matrix_ends`` flag becomes
    ``matrix_mode`` (True → ONLY_PARENT, False → ONLY_CONFIGURATIONS).

Legacy camelCase keys (``childProjects``, ``onlyIfSCMChanges`` …) are
normalised before any migration runs.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from downstream_trigger.config import TriggerDefaultsConfig
from downstream_trigger.exceptions import InvalidConfigurationError, MigrationError
from downstream_trigger.logging import get_logger
from downstream_trigger.triggers.models import CONFIG_VERSION, TriggerPolicy

log = get_logger(__name__)

MigrationFn = Callable[[dict[str, Any]], dict[str, Any]]

_LEGACY_KEYS: dict[str, str] = {
    "childProjects": "child_projects",
    "onlyIfSCMChanges": "only_if_downstream_changes",
    "onlyIfLocalSCMChanges": "only_if_local_changes",
    "thresholdStrategy": "strategy",
    "matrixTrigger": "matrix_mode",
    "triggerOnlyOnceWhenMatrixEnds": "trigger_only_once_when_matrix_ends",
    "configVersion": "config_version",
}


def normalise_keys(config: Mapping[str, Any]) -> dict[str, Any]:
    """Rename legacy camelCase keys.  Snake-case keys win on conflict."""
    result: dict[str, Any] = {}
    for key, value in config.items():
        target = _LEGACY_KEYS.get(key, key)
        if target != key and target in config:
            continue
        result[target] = value
    return result


# ---------------------------------------------------------------------------
# Concrete migrations
# ---------------------------------------------------------------------------


def _migrate_v1_to_v2(config: dict[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(config)
    if result.get("strategy") is None:
        result["strategy"] = "AND_HIGHER"
    result["config_version"] = 2
    return result


def _migrate_v2_to_v3(config: dict[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(config)
    legacy = result.pop("trigger_only_once_when_matrix_ends", None)
    if legacy is not None:
        result["matrix_mode"] = "ONLY_PARENT" if legacy else "ONLY_CONFIGURATIONS"
    result["config_version"] = 3
    return result


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class MigrationRegistry:
    """Registry of trigger configuration migrations keyed by source version."""

    def __init__(self) -> None:
        self._graph: dict[int, list[tuple[int, MigrationFn]]] = defaultdict(list)

    def register(self, from_version: int, to_version: int, fn: MigrationFn) -> None:
        self._graph[from_version].append((to_version, fn))

    def find_path(
        self, from_version: int, to_version: int
    ) -> list[tuple[int, MigrationFn]] | None:
        """Shortest chain of migrations (BFS), or None if unreachable."""
        if from_version == to_version:
            return []

        visited: set[int] = {from_version}
        queue: list[tuple[int, list[tuple[int, MigrationFn]]]] = [(from_version, [])]

        while queue:
            current, path = queue.pop(0)
            for next_ver, fn in self._graph.get(current, []):
                if next_ver in visited:
                    continue
                new_path = path + [(next_ver, fn)]
                if next_ver == to_version:
                    return new_path
                visited.add(next_ver)
                queue.append((next_ver, new_path))

        return None


class MigrationPipeline:
    """Upgrades raw trigger configuration mappings to ``CONFIG_VERSION``.

    Usage::

        pipeline = MigrationPipeline()
        upgraded = pipeline.upgrade({"childProjects": "b, c", "threshold": "SUCCESS"})
    """

    def __init__(self, registry: MigrationRegistry | None = None) -> None:
        self._registry = registry or _build_default_registry()

    def upgrade(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        config = normalise_keys(raw)

        try:
            detected = int(config.get("config_version", 1))
        except (TypeError, ValueError):
            raise InvalidConfigurationError(
                f"config_version must be an integer, got {config.get('config_version')!r}",
                field="config_version",
            ) from None

        if detected == CONFIG_VERSION:
            return config

        path = self._registry.find_path(detected, CONFIG_VERSION)
        if path is None:
            raise MigrationError(detected, CONFIG_VERSION)

        current = config
        for _to_ver, fn in path:
            current = fn(current)

        log.debug("trigger_config_migrated", from_version=detected, to_version=CONFIG_VERSION)
        return current


def _build_default_registry() -> MigrationRegistry:
    registry = MigrationRegistry()
    registry.register(1, 2, _migrate_v1_to_v2)
    registry.register(2, 3, _migrate_v2_to_v3)
    return registry


default_pipeline = MigrationPipeline()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_policy(
    raw: Mapping[str, Any],
    defaults: TriggerDefaultsConfig | None = None,
    pipeline: MigrationPipeline | None = None,
) -> TriggerPolicy:
    """Migrate and strictly validate *raw* into a :class:`TriggerPolicy`.

    Raises:
        InvalidConfigurationError: unknown enum strings or invalid fields.
        MigrationError: the stored version cannot be upgraded.
    """
    config = (pipeline or default_pipeline).upgrade(raw)

    if defaults is not None:
        config.setdefault("threshold", defaults.threshold)
        config.setdefault("matrix_mode", defaults.matrix_mode)

    try:
        return TriggerPolicy.model_validate(config)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        messages = "; ".join(e.get("msg", "") for e in errors)
        field = ".".join(str(p) for p in errors[0]["loc"]) if errors and errors[0].get("loc") else None
        raise InvalidConfigurationError(
            f"Trigger policy validation failed: {messages}",
            field=field,
            errors=errors,
        ) from exc
