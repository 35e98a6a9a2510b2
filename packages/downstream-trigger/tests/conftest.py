"""Shared pytest fixtures for the downstream-trigger test suite."""

from __future__ import annotations

from typing import Generator

import pytest

from downstream_trigger.config import SchedulerConfig, Settings, override_settings
from downstream_trigger.triggers.engine import TriggerDecisionEngine
from downstream_trigger.triggers.scheduler import SerializedPollScheduler
from tests.fakes import FakeGroup, FakeProject


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    settings = Settings(
        scheduler={"default_quiet_period": 0, "thread_name_prefix": "test-poll"},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    return SchedulerConfig(default_quiet_period=0, thread_name_prefix="test-poll")


@pytest.fixture
def scheduler(scheduler_config: SchedulerConfig) -> Generator[SerializedPollScheduler, None, None]:
    s = SerializedPollScheduler(scheduler_config)
    yield s
    s.shutdown(wait=True)


@pytest.fixture
def engine(
    scheduler: SerializedPollScheduler, scheduler_config: SchedulerConfig
) -> TriggerDecisionEngine:
    return TriggerDecisionEngine(scheduler, config=scheduler_config)


# ---------------------------------------------------------------------------
# Host objects
# ---------------------------------------------------------------------------


@pytest.fixture
def group() -> FakeGroup:
    return FakeGroup()


@pytest.fixture
def upstream(group: FakeGroup) -> FakeProject:
    return FakeProject("upstream", group=group)


@pytest.fixture
def downstream(group: FakeGroup) -> FakeProject:
    return FakeProject("downstream", group=group)
