"""
Host contract
Narrow interfaces through which the build-orchestration host is consumed
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set


class ReportKind(str, Enum):
    """Optional sub-reports a host may attach to a build"""
    TEST_RESULTS = "test-results"
    SOURCE_CONTROL = "source-control"
    DEPENDENCY = "dependency"
    IMAGE_FINGERPRINT = "image-fingerprint"
    UNKNOWN = "unknown"


# Attributes a report handle must expose to be recognised as a given kind.
# Probed in order; the first complete match wins.
_KIND_CAPABILITIES = [
    (ReportKind.TEST_RESULTS, ("total_count", "skip_count", "fail_count", "failed_tests")),
    (ReportKind.SOURCE_CONTROL, ("scm_name", "remote_urls", "last_build")),
    (ReportKind.DEPENDENCY, ("deployed_artifacts", "generated_artifacts", "dependencies")),
    (ReportKind.IMAGE_FINGERPRINT, ("image_ids",)),
]


def _has_attribute(handle: Any, attribute: str) -> bool:
    try:
        return hasattr(handle, attribute)
    except Exception:
        # Present, but raised when read
        return True


def kind_of(handle: Any) -> ReportKind:
    """
    Resolve which report kind a type-erased handle carries

    Args:
        handle: Report handle supplied by the host, or None

    Returns:
        The matching ReportKind, UNKNOWN when nothing matches
    """
    if handle is None:
        return ReportKind.UNKNOWN

    for kind, attributes in _KIND_CAPABILITIES:
        if all(_has_attribute(handle, attribute) for attribute in attributes):
            return kind

    return ReportKind.UNKNOWN


class NodeHandle(Protocol):
    """Machine a build executes on"""
    display_name: Optional[str]
    label_string: Optional[str]


class ExecutorHandle(Protocol):
    """Executor slot bound to a running build"""
    node: Optional[NodeHandle]


class EnvironmentContributor(Protocol):
    """Contributes variables to a build's environment"""

    def build_env_vars(self, env: Dict[str, str]) -> None:
        ...


class BuildHandle(Protocol):
    """Single build execution as exposed by the host"""
    id: str
    project_name: str
    full_project_name: str
    display_name: str
    full_display_name: str
    description: Optional[str]
    url: str
    number: int
    start_time_millis: int
    duration_millis: int
    timestamp: datetime
    result: Optional[str]
    executor: Optional[ExecutorHandle]
    upstream_build: Optional["BuildHandle"]
    build_variables: Dict[str, str]
    sensitive_build_variables: Set[str]
    environment_contributors: Optional[List[Optional[EnvironmentContributor]]]

    def get_environment(self) -> Dict[str, str]:
        ...

    def get_report(self, kind: ReportKind) -> Optional[Any]:
        ...
