"""Tests for snapshot construction and the refresh operation."""

import logging
from enum import Enum

from conftest import CAPTURE_TIME, FakeBuild, FakeContributor, FakeExecutor, FakeNode
from host.build_handle import ReportKind
from host.payload import ImageFingerprintPayload, ScmReportPayload, TestReportPayload


class _Result(Enum):
    SUCCESS = 0
    UNSTABLE = 1

    def __str__(self) -> str:
        return self.name


class _UnloadedScmData:
    scm_name = "git"
    remote_urls = []

    @property
    def last_build(self):
        raise RuntimeError("lastBuild not loaded")


# ---------------------------------------------------------------------------
# Common initialization
# ---------------------------------------------------------------------------


class TestCommonFields:
    def test_identity_and_timing(self, builder) -> None:
        snapshot = builder.from_direct_execution(FakeBuild(description="nightly"))

        assert snapshot.id == "42"
        assert snapshot.project_name == "my-job"
        assert snapshot.full_project_name == "folder/my-job"
        assert snapshot.display_name == "#42"
        assert snapshot.full_display_name == "my-job #42"
        assert snapshot.description == "nightly"
        assert snapshot.url == "job/my-job/42/"
        assert snapshot.build_num == 42
        assert snapshot.build_duration == 12345
        assert snapshot.timestamp == "2023-11-14T22:13:20.000+0000"

    def test_explicit_capture_time(self, builder) -> None:
        later = CAPTURE_TIME.replace(second=CAPTURE_TIME.second + 10)
        snapshot = builder.from_delegated_execution(FakeBuild(), current_time=later)
        assert snapshot.build_duration == 22345

    def test_finished_build_uses_host_duration(self, builder) -> None:
        snapshot = builder.from_direct_execution(FakeBuild(duration_millis=999))
        assert snapshot.build_duration == 999

    def test_no_executor_falls_back_to_master(self, builder) -> None:
        snapshot = builder.from_direct_execution(FakeBuild(id="7"))
        assert snapshot.id == "7"
        assert snapshot.build_host == "master"
        assert snapshot.build_label == "master"

    def test_executor_without_node_falls_back_to_master(self, builder) -> None:
        snapshot = builder.from_delegated_execution(FakeBuild(executor=FakeExecutor(node=None)))
        assert (snapshot.build_host, snapshot.build_label) == ("master", "master")

    def test_node_identity(self, builder) -> None:
        build = FakeBuild(executor=FakeExecutor(FakeNode(display_name="agent-1", label_string="linux docker")))
        snapshot = builder.from_direct_execution(build)
        assert (snapshot.build_host, snapshot.build_label) == ("agent-1", "linux docker")

    def test_blank_node_values_fall_back_to_master(self, builder) -> None:
        build = FakeBuild(executor=FakeExecutor(FakeNode(display_name="   ", label_string="")))
        snapshot = builder.from_direct_execution(build)
        assert (snapshot.build_host, snapshot.build_label) == ("master", "master")

    def test_no_reports_leaves_sections_null(self, builder) -> None:
        snapshot = builder.from_direct_execution(FakeBuild())
        assert snapshot.result is None
        assert snapshot.test_results is None
        assert snapshot.git_info is None
        assert snapshot.maven_info is None
        assert snapshot.docker_info is None


# ---------------------------------------------------------------------------
# Direct execution
# ---------------------------------------------------------------------------


class TestDirectExecution:
    def test_top_level_build_is_its_own_root(self, builder) -> None:
        snapshot = builder.from_direct_execution(FakeBuild())
        assert snapshot.root_project_name == "my-job"
        assert snapshot.root_full_project_name == "folder/my-job"
        assert snapshot.root_project_display_name == "#42"
        assert snapshot.root_build_num == 42

    def test_root_is_top_of_upstream_chain(self, builder) -> None:
        root = FakeBuild(id="1", project_name="trigger", full_project_name="ci/trigger", display_name="#1", number=1)
        middle = FakeBuild(id="5", project_name="middle", upstream_build=root, number=5)
        snapshot = builder.from_direct_execution(FakeBuild(upstream_build=middle))

        assert snapshot.root_project_name == "trigger"
        assert snapshot.root_full_project_name == "ci/trigger"
        assert snapshot.root_project_display_name == "#1"
        assert snapshot.root_build_num == 1

    def test_upstream_cycle_terminates(self, builder) -> None:
        first = FakeBuild(id="1", project_name="first", number=1)
        second = FakeBuild(id="2", project_name="second", number=2, upstream_build=first)
        first.upstream_build = second
        snapshot = builder.from_direct_execution(first)
        assert snapshot.root_project_name == "second"

    def test_environment_merge_order(self, builder) -> None:
        build = FakeBuild(
            build_variables={"A": "build", "B": "build"},
            environment_contributors=[
                FakeContributor({"B": "contributor", "C": "contributor"}),
                None,
                FakeContributor({}),
            ],
            environment={"C": "global", "D": "global"},
        )
        snapshot = builder.from_direct_execution(build)
        assert snapshot.build_variables == {"A": "build", "B": "contributor", "C": "global", "D": "global"}

    def test_host_build_variables_are_not_mutated(self, builder) -> None:
        variables = {"A": "1", "SECRET": "x"}
        builder.from_direct_execution(FakeBuild(build_variables=variables, sensitive_build_variables={"SECRET"}))
        assert variables == {"A": "1", "SECRET": "x"}

    def test_sensitive_names_removed_from_every_source(self, builder) -> None:
        build = FakeBuild(
            build_variables={"TOKEN": "a", "KEEP": "1"},
            environment_contributors=[FakeContributor({"PASSWORD": "b"})],
            environment={"TOKEN": "c", "PASSWORD": "d", "HOME": "/root"},
            sensitive_build_variables={"TOKEN", "PASSWORD"},
        )
        snapshot = builder.from_direct_execution(build)
        assert snapshot.build_variables == {"KEEP": "1", "HOME": "/root"}
        assert snapshot.sensitive_build_variables == []

    def test_environment_failure_is_a_warning(self, builder, caplog) -> None:
        build = FakeBuild(
            build_variables={"A": "1", "SECRET": "x"},
            sensitive_build_variables={"SECRET"},
            environment_error=IOError("agent offline"),
        )
        with caplog.at_level(logging.WARNING, logger="snapshot.builder"):
            snapshot = builder.from_direct_execution(build)

        assert snapshot.build_variables == {"A": "1"}
        assert "#42" in caplog.text


# ---------------------------------------------------------------------------
# Delegated execution
# ---------------------------------------------------------------------------


class TestDelegatedExecution:
    def test_root_equals_own_identity(self, builder) -> None:
        root = FakeBuild(id="1", project_name="trigger", number=1)
        snapshot = builder.from_delegated_execution(FakeBuild(upstream_build=root))

        assert snapshot.root_project_name == snapshot.project_name
        assert snapshot.root_full_project_name == snapshot.full_project_name
        assert snapshot.root_project_display_name == snapshot.display_name
        assert snapshot.root_build_num == snapshot.build_num

    def test_environment_in_one_call(self, builder) -> None:
        build = FakeBuild(
            build_variables={"IGNORED": "1"},
            environment={"BRANCH": "main", "API_KEY": "k"},
            sensitive_build_variables={"API_KEY"},
        )
        snapshot = builder.from_delegated_execution(build)
        assert snapshot.build_variables == {"BRANCH": "main"}

    def test_environment_failure_falls_back_to_empty(self, builder, caplog) -> None:
        build = FakeBuild(environment_error=RuntimeError("interrupted"))
        with caplog.at_level(logging.WARNING, logger="snapshot.builder"):
            snapshot = builder.from_delegated_execution(build)

        assert snapshot.build_variables == {}
        assert "Unable to get environment for #42" in caplog.text


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestUpdateResult:
    def test_first_result_wins(self, builder) -> None:
        build = FakeBuild()
        snapshot = builder.from_direct_execution(build)

        build.result = "UNSTABLE"
        builder.update_result(snapshot, build)
        build.result = "SUCCESS"
        builder.update_result(snapshot, build)

        assert snapshot.result == "UNSTABLE"

    def test_null_result_does_not_clear(self, builder) -> None:
        build = FakeBuild(result="FAILURE")
        snapshot = builder.from_direct_execution(build)
        build.result = None
        builder.update_result(snapshot, build)
        assert snapshot.result == "FAILURE"

    def test_reports_attached_later_are_picked_up(self, builder) -> None:
        build = FakeBuild()
        snapshot = builder.from_delegated_execution(build)
        assert snapshot.test_results is None

        build.reports[ReportKind.TEST_RESULTS] = TestReportPayload(total_count=5, skip_count=1, fail_count=1)
        build.reports[ReportKind.IMAGE_FINGERPRINT] = ImageFingerprintPayload(image_ids={"sha256:1"})
        builder.update_result(snapshot, build)

        assert snapshot.test_results.pass_count == 3
        assert snapshot.docker_info.image_ids == {"sha256:1"}
        assert snapshot.git_info is None
        assert snapshot.maven_info is None

    def test_captured_reports_are_never_replaced(self, builder) -> None:
        build = FakeBuild(reports={ReportKind.SOURCE_CONTROL: ScmReportPayload(scm_name="git")})
        snapshot = builder.from_direct_execution(build)
        captured = snapshot.git_info

        build.reports[ReportKind.SOURCE_CONTROL] = ScmReportPayload(scm_name="svn")
        builder.update_result(snapshot, build)
        builder.update_result(snapshot, build)

        assert snapshot.git_info is captured
        assert snapshot.git_info.scm_name == "git"

    def test_report_of_wrong_kind_is_stored_empty(self, builder) -> None:
        build = FakeBuild(reports={ReportKind.TEST_RESULTS: ImageFingerprintPayload()})
        snapshot = builder.from_direct_execution(build)
        assert snapshot.test_results is not None
        assert snapshot.test_results.total_count == 0

    def test_result_objects_are_stored_as_names(self, builder) -> None:
        build = FakeBuild(result=_Result.UNSTABLE)
        snapshot = builder.from_direct_execution(build)
        assert snapshot.result == "UNSTABLE"

        build.result = _Result.SUCCESS
        builder.update_result(snapshot, build)
        assert snapshot.result == "UNSTABLE"

    def test_failing_report_field_does_not_fail_capture(self, builder) -> None:
        build = FakeBuild(reports={ReportKind.SOURCE_CONTROL: _UnloadedScmData()})
        snapshot = builder.from_direct_execution(build)
        assert snapshot.git_info.scm_name == "git"
        assert snapshot.git_info.revision is None
