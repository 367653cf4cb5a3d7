"""Shared fixtures: an in-memory host build and a fixed clock."""

from datetime import datetime, timedelta, timezone

import pytest

from configuration.settings import DateFormatter
from snapshot.builder import SnapshotBuilder

START = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
START_MILLIS = 1_700_000_000_000
CAPTURE_TIME = START + timedelta(milliseconds=12345)


class FakeNode:
    def __init__(self, display_name=None, label_string=None):
        self.display_name = display_name
        self.label_string = label_string


class FakeExecutor:
    def __init__(self, node=None):
        self.node = node


class FakeContributor:
    def __init__(self, variables):
        self.variables = variables

    def build_env_vars(self, env):
        env.update(self.variables)


class FakeBuild:
    """Host build whose state tests mutate directly."""

    def __init__(self, **overrides):
        self.id = "42"
        self.project_name = "my-job"
        self.full_project_name = "folder/my-job"
        self.display_name = "#42"
        self.full_display_name = "my-job #42"
        self.description = None
        self.url = "job/my-job/42/"
        self.number = 42
        self.start_time_millis = START_MILLIS
        self.duration_millis = 0
        self.timestamp = START
        self.result = None
        self.executor = None
        self.upstream_build = None
        self.build_variables = {}
        self.sensitive_build_variables = set()
        self.environment_contributors = []
        self.environment = {}
        self.environment_error = None
        self.reports = {}
        for name, value in overrides.items():
            setattr(self, name, value)

    def get_environment(self):
        if self.environment_error is not None:
            raise self.environment_error
        return dict(self.environment)

    def get_report(self, kind):
        return self.reports.get(kind)


@pytest.fixture
def date_formatter() -> DateFormatter:
    return DateFormatter(milli_seconds=True)


@pytest.fixture
def builder(date_formatter) -> SnapshotBuilder:
    return SnapshotBuilder(date_formatter, clock=lambda: CAPTURE_TIME)
