"""In-memory host objects used across the test suite."""

from __future__ import annotations

import threading
from typing import Any, Sequence

from downstream_trigger.host import (
    Build,
    ChangeSet,
    MatrixProject,
    PollingResult,
    Project,
    ProjectGroup,
)
from downstream_trigger.triggers.models import Result


class FakeChangeSet(ChangeSet):
    def __init__(self, entries: Sequence[str] = ()) -> None:
        self.entries = list(entries)

    def is_empty(self) -> bool:
        return not self.entries


class FakeGroup(ProjectGroup):
    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}

    def add(self, project: Project) -> Project:
        self.projects[project.identity] = project
        return project

    def get_project(self, name: str) -> Project | None:
        return self.projects.get(name)


class FakeProject(Project):
    def __init__(
        self,
        name: str,
        group: FakeGroup | None = None,
        exclusive_workspace: bool = False,
        has_changes: bool = False,
        poll_error: Exception | None = None,
        accept: bool = True,
        quiet_period: int | None = None,
        disabled: bool = False,
    ) -> None:
        self._name = name
        self._group = group or FakeGroup()
        self._group.add(self)
        self.exclusive_workspace = exclusive_workspace
        self.has_changes = has_changes
        self.poll_error = poll_error
        self.accept = accept
        self._quiet_period = quiet_period
        self.disabled = disabled
        self.last: Build | None = None
        self.last_unsuccessful: Build | None = None
        self.poll_calls = 0
        self.scheduled: list[tuple[int, Any, tuple[Any, ...]]] = []
        self._lock = threading.Lock()

    @property
    def identity(self) -> str:
        return self._name

    @property
    def parent(self) -> FakeGroup:
        return self._group

    @property
    def is_disabled(self) -> bool:
        return self.disabled

    @property
    def quiet_period(self) -> int | None:
        return self._quiet_period

    @property
    def last_build(self) -> Build | None:
        return self.last

    @property
    def last_unsuccessful_build(self) -> Build | None:
        return self.last_unsuccessful

    def requires_exclusive_workspace(self) -> bool:
        return self.exclusive_workspace

    def poll(self, listener: Any) -> PollingResult:
        with self._lock:
            self.poll_calls += 1
        if self.poll_error is not None:
            raise self.poll_error
        return PollingResult(has_changes=self.has_changes)

    def schedule_build(self, quiet_period: int, cause: Any, actions: Sequence[Any] = ()) -> bool:
        with self._lock:
            self.scheduled.append((quiet_period, cause, tuple(actions)))
        return self.accept

    def set_history(self, last: int | None, last_unsuccessful: int | None) -> None:
        self.last = None if last is None else FakeBuild(self, last)
        self.last_unsuccessful = (
            None if last_unsuccessful is None else FakeBuild(self, last_unsuccessful, Result.FAILURE)
        )


class FakeMatrixProject(FakeProject, MatrixProject):
    def __init__(self, name: str, configurations: Sequence[str] = (), **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self.configurations = [
            FakeProject(f"{name}/{axis}", group=FakeGroup()) for axis in configurations
        ]

    @property
    def active_configurations(self) -> Sequence[Project]:
        return self.configurations


class FakeBuild(Build):
    def __init__(
        self,
        project: Project,
        number: int = 1,
        result: Result = Result.SUCCESS,
        changes: Sequence[str] = (),
        url: str | None = None,
    ) -> None:
        self._project = project
        self._number = number
        self._result = result
        self._changeset = FakeChangeSet(changes)
        self._url = url

    @property
    def project(self) -> Project:
        return self._project

    @property
    def number(self) -> int:
        return self._number

    @property
    def result(self) -> Result:
        return self._result

    @property
    def changeset(self) -> FakeChangeSet:
        return self._changeset

    @property
    def url(self) -> str | None:
        return self._url
