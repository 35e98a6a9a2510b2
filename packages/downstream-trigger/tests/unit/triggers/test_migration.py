"""Unit tests — MigrationPipeline, MigrationRegistry and load_policy."""

from __future__ import annotations

import pytest

from downstream_trigger.config import TriggerDefaultsConfig
from downstream_trigger.exceptions import InvalidConfigurationError, MigrationError
from downstream_trigger.triggers.migration import (
    MigrationPipeline,
    MigrationRegistry,
    _migrate_v1_to_v2,
    _migrate_v2_to_v3,
    load_policy,
    normalise_keys,
)
from downstream_trigger.triggers.models import CONFIG_VERSION, MatrixMode, Result, Strategy


@pytest.mark.unit
class TestNormaliseKeys:
    def test_renames_legacy_keys(self) -> None:
        result = normalise_keys(
            {
                "childProjects": "b",
                "onlyIfSCMChanges": True,
                "onlyIfLocalSCMChanges": False,
                "matrixTrigger": "BOTH",
            }
        )
        assert result == {
            "child_projects": "b",
            "only_if_downstream_changes": True,
            "only_if_local_changes": False,
            "matrix_mode": "BOTH",
        }

    def test_snake_case_wins_on_conflict(self) -> None:
        result = normalise_keys({"childProjects": "old", "child_projects": "new"})
        assert result == {"child_projects": "new"}

    def test_does_not_mutate_input(self) -> None:
        raw = {"childProjects": "b"}
        normalise_keys(raw)
        assert raw == {"childProjects": "b"}


@pytest.mark.unit
class TestMigrateV1ToV2:
    def test_missing_strategy_becomes_and_higher(self) -> None:
        result = _migrate_v1_to_v2({"child_projects": "b"})
        assert result["strategy"] == "AND_HIGHER"
        assert result["config_version"] == 2

    def test_existing_strategy_preserved(self) -> None:
        result = _migrate_v1_to_v2({"child_projects": "b", "strategy": "EXACT"})
        assert result["strategy"] == "EXACT"

    def test_does_not_mutate_input(self) -> None:
        raw = {"child_projects": "b"}
        _migrate_v1_to_v2(raw)
        assert "strategy" not in raw


@pytest.mark.unit
class TestMigrateV2ToV3:
    def test_true_becomes_only_parent(self) -> None:
        result = _migrate_v2_to_v3({"trigger_only_once_when_matrix_ends": True})
        assert result["matrix_mode"] == "ONLY_PARENT"
        assert "trigger_only_once_when_matrix_ends" not in result

    def test_false_becomes_only_configurations(self) -> None:
        result = _migrate_v2_to_v3({"trigger_only_once_when_matrix_ends": False})
        assert result["matrix_mode"] == "ONLY_CONFIGURATIONS"

    def test_absent_flag_keeps_matrix_mode(self) -> None:
        result = _migrate_v2_to_v3({"matrix_mode": "BOTH"})
        assert result["matrix_mode"] == "BOTH"
        assert result["config_version"] == 3


@pytest.mark.unit
class TestMigrationRegistry:
    def test_same_version_is_empty_path(self) -> None:
        assert MigrationRegistry().find_path(2, 2) == []

    def test_no_path_returns_none(self) -> None:
        assert MigrationRegistry().find_path(1, 3) is None

    def test_multi_step_path(self) -> None:
        registry = MigrationRegistry()
        registry.register(1, 2, lambda c: c)
        registry.register(2, 3, lambda c: c)
        path = registry.find_path(1, 3)
        assert path is not None
        assert [to for to, _ in path] == [2, 3]


@pytest.mark.unit
class TestMigrationPipeline:
    def test_unversioned_config_is_fully_upgraded(self) -> None:
        upgraded = MigrationPipeline().upgrade(
            {"childProjects": "b", "triggerOnlyOnceWhenMatrixEnds": True}
        )
        assert upgraded["config_version"] == CONFIG_VERSION
        assert upgraded["strategy"] == "AND_HIGHER"
        assert upgraded["matrix_mode"] == "ONLY_PARENT"

    def test_current_version_untouched(self) -> None:
        raw = {"config_version": CONFIG_VERSION, "child_projects": "b"}
        assert MigrationPipeline().upgrade(raw) == raw

    def test_future_version_rejected(self) -> None:
        with pytest.raises(MigrationError):
            MigrationPipeline().upgrade({"config_version": 99, "child_projects": "b"})

    def test_non_integer_version_rejected(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            MigrationPipeline().upgrade({"config_version": "three", "child_projects": "b"})


@pytest.mark.unit
class TestLoadPolicy:
    def test_legacy_config_loads(self) -> None:
        policy = load_policy(
            {
                "childProjects": "api-tests, deploy",
                "threshold": "UNSTABLE",
                "onlyIfSCMChanges": True,
                "triggerOnlyOnceWhenMatrixEnds": False,
            }
        )
        assert policy.child_projects == ("api-tests", "deploy")
        assert policy.threshold is Result.UNSTABLE
        assert policy.strategy is Strategy.AND_HIGHER
        assert policy.only_if_downstream_changes
        assert policy.matrix_mode is MatrixMode.ONLY_CONFIGURATIONS

    def test_invalid_threshold_raises(self) -> None:
        with pytest.raises(InvalidConfigurationError, match="Unknown result type"):
            load_policy({"child_projects": "b", "threshold": "MAYBE"})

    def test_invalid_strategy_wrapped(self) -> None:
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_policy({"config_version": 3, "child_projects": "b", "strategy": "SOMETIMES"})
        assert exc_info.value.field == "strategy"
        assert exc_info.value.errors

    def test_defaults_fill_missing_fields(self) -> None:
        defaults = TriggerDefaultsConfig(threshold="FAILURE", matrix_mode="BOTH")
        policy = load_policy({"child_projects": "b"}, defaults=defaults)
        assert policy.threshold is Result.FAILURE
        assert policy.matrix_mode is MatrixMode.BOTH

    def test_explicit_values_beat_defaults(self) -> None:
        defaults = TriggerDefaultsConfig(threshold="FAILURE")
        policy = load_policy({"child_projects": "b", "threshold": "SUCCESS"}, defaults=defaults)
        assert policy.threshold is Result.SUCCESS
