"""
Snapshot builder
Assembles a BuildSnapshot from a build handle and whichever sub-reports are attached
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from configuration.settings import EPOCH, DateFormatter
from extraction.base import ReportExtractor
from extraction.dependencies import DependencyExtractor
from extraction.image_fingerprints import ImageFingerprintExtractor
from extraction.source_control import SourceControlExtractor
from extraction.test_results import TestResultExtractor
from host.build_handle import BuildHandle, ReportKind
from models.pydantic_models import BuildSnapshot

logger = logging.getLogger(__name__)

# Host and label used when a build is not bound to a named node
DEFAULT_NODE_NAME = "master"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class SnapshotBuilder:
    """Creates and refreshes build snapshots"""

    def __init__(self, date_formatter: DateFormatter,
                 clock: Optional[Callable[[], datetime]] = None):
        self.date_formatter = date_formatter
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        # Snapshot field each report kind is stored in
        self.extractors: Dict[str, Tuple[ReportKind, ReportExtractor]] = {
            "test_results": (ReportKind.TEST_RESULTS, TestResultExtractor()),
            "git_info": (ReportKind.SOURCE_CONTROL, SourceControlExtractor()),
            "maven_info": (ReportKind.DEPENDENCY, DependencyExtractor()),
            "docker_info": (ReportKind.IMAGE_FINGERPRINT, ImageFingerprintExtractor()),
        }

    def from_direct_execution(self, build: BuildHandle,
                              current_time: Optional[datetime] = None) -> BuildSnapshot:
        """
        Snapshot a build that ran directly on an executor

        Args:
            build: Build handle supplied by the host
            current_time: Capture instant, defaults to the builder's clock

        Returns:
            Snapshot with root-build linkage and the merged environment
        """
        snapshot = self._init_snapshot(build, current_time)

        root = self._root_build(build)
        snapshot.root_project_name = root.project_name
        snapshot.root_full_project_name = root.full_project_name
        snapshot.root_project_display_name = root.display_name
        snapshot.root_build_num = root.number

        build_variables = dict(build.build_variables or {})

        scratch: Dict[str, str] = {}
        for contributor in build.environment_contributors or []:
            if contributor is None:
                continue
            contributor.build_env_vars(scratch)
            if scratch:
                build_variables.update(scratch)
                scratch.clear()

        try:
            build_variables.update(build.get_environment())
        except Exception as e:
            logger.warning("Unable to update buildVariables with environment of %s: %s",
                           build.display_name, e, exc_info=True)

        snapshot.build_variables = self._without_sensitive(build, build_variables)
        return snapshot

    def from_delegated_execution(self, build: BuildHandle,
                                 current_time: Optional[datetime] = None) -> BuildSnapshot:
        """
        Snapshot a build whose steps are delegated, e.g. a pipeline run

        Args:
            build: Build handle supplied by the host
            current_time: Capture instant, defaults to the builder's clock

        Returns:
            Snapshot rooted at the build itself
        """
        snapshot = self._init_snapshot(build, current_time)

        snapshot.root_project_name = snapshot.project_name
        snapshot.root_full_project_name = snapshot.full_project_name
        snapshot.root_project_display_name = snapshot.display_name
        snapshot.root_build_num = snapshot.build_num

        try:
            build_variables = dict(build.get_environment())
        except Exception as e:
            logger.warning("Unable to get environment for %s: %s",
                           build.display_name, e, exc_info=True)
            build_variables = {}

        snapshot.build_variables = self._without_sensitive(build, build_variables)
        return snapshot

    def update_result(self, snapshot: BuildSnapshot, build: BuildHandle) -> BuildSnapshot:
        """
        Fill in fields that are still unset from the current build state

        Already captured values are never replaced, so this is safe to call
        any number of times while the build progresses.
        """
        result = build.result
        snapshot.offer("result", None if result is None else str(result))

        for field_name, (kind, extractor) in self.extractors.items():
            if snapshot.is_set(field_name):
                continue
            handle = build.get_report(kind)
            if handle is not None:
                snapshot.offer(field_name, extractor.extract(handle))

        return snapshot

    def _init_snapshot(self, build: BuildHandle, current_time: Optional[datetime]) -> BuildSnapshot:
        """Capture identity, timing and node fields shared by both paths"""
        current_time = current_time or self.clock()
        build_host, build_label = self._node_identity(build)

        snapshot = BuildSnapshot(
            id=build.id,
            project_name=build.project_name,
            full_project_name=build.full_project_name,
            display_name=build.display_name,
            full_display_name=build.full_display_name,
            description=build.description,
            url=build.url,
            build_host=build_host,
            build_label=build_label,
            build_num=build.number,
            build_duration=self._duration(build, current_time),
            timestamp=self.date_formatter.format(build.timestamp),
        )
        return self.update_result(snapshot, build)

    def _duration(self, build: BuildHandle, current_time: datetime) -> int:
        """
        Build duration in milliseconds

        A non-zero duration reported by the host for a finished build wins;
        otherwise the elapsed time since start as of capture is used.
        """
        if build.duration_millis:
            return build.duration_millis
        if current_time.tzinfo is None:
            current_time = current_time.replace(tzinfo=timezone.utc)
        return (current_time - EPOCH) // timedelta(milliseconds=1) - build.start_time_millis

    def _node_identity(self, build: BuildHandle) -> Tuple[str, str]:
        """Resolve (host, label) from the node the build executes on"""
        executor = build.executor
        node = executor.node if executor is not None else None
        if node is None:
            return DEFAULT_NODE_NAME, DEFAULT_NODE_NAME

        build_host = DEFAULT_NODE_NAME if _is_blank(node.display_name) else node.display_name
        build_label = DEFAULT_NODE_NAME if _is_blank(node.label_string) else node.label_string
        return build_host, build_label

    def _root_build(self, build: BuildHandle) -> BuildHandle:
        """Walk the upstream chain to the build that triggered it all"""
        root = build
        seen = {build.id}
        while root.upstream_build is not None and root.upstream_build.id not in seen:
            root = root.upstream_build
            seen.add(root.id)
        return root

    def _without_sensitive(self, build: BuildHandle, build_variables: Dict[str, str]) -> Dict[str, str]:
        for key in build.sensitive_build_variables or ():
            build_variables.pop(key, None)
        return build_variables
