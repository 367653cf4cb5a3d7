"""
Payload host
Serves the host contract from a JSON build description posted by a CI system
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel

from errors import EnvironmentUnavailableError
from host.build_handle import ReportKind


class NodePayload(BaseModel):
    """Node a build ran on"""
    display_name: Optional[str] = None
    label_string: Optional[str] = None


class TestCasePayload(BaseModel):
    """Failed test case"""
    __test__ = False

    full_name: str
    error_details: Optional[str] = None


class TestReportPayload(BaseModel):
    """Aggregated test report"""
    __test__ = False

    total_count: int = 0
    skip_count: int = 0
    fail_count: int = 0
    failed_tests: List[TestCasePayload] = []


class ScmBuildPayload(BaseModel):
    """Last build recorded by the SCM plugin"""
    revision: Optional[str] = None


class ScmReportPayload(BaseModel):
    """SCM build data"""
    scm_name: Optional[str] = None
    remote_urls: Set[str] = set()
    last_build: Optional[ScmBuildPayload] = None


class ArtifactPayload(BaseModel):
    """Maven artifact"""
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    base_version: Optional[str] = None
    type: Optional[str] = None
    classifier: Optional[str] = None
    extension: Optional[str] = None
    file: Optional[str] = None
    url: Optional[str] = None
    snapshot: bool = False


class DependencyPayload(ArtifactPayload):
    """Maven dependency"""
    scope: Optional[str] = None
    optional: bool = False


class DependencyReportPayload(BaseModel):
    """Maven report"""
    deployed_artifacts: List[ArtifactPayload] = []
    generated_artifacts: List[ArtifactPayload] = []
    downstream_jobs: List[str] = []
    upstream_builds: List[str] = []
    dependencies: List[DependencyPayload] = []
    downstream_jobs_by_artifact: Dict[str, List[str]] = {}


class ImageFingerprintPayload(BaseModel):
    """Docker fingerprint action"""
    image_ids: Set[str] = set()


class BuildUpdate(BaseModel):
    """State reported by the CI system while a build progresses"""
    result: Optional[str] = None
    duration_millis: Optional[int] = None
    test_results: Optional[TestReportPayload] = None
    scm: Optional[ScmReportPayload] = None
    dependencies: Optional[DependencyReportPayload] = None
    image_fingerprints: Optional[ImageFingerprintPayload] = None


class BuildPayload(BaseModel):
    """Input payload describing one build"""
    id: str
    project_name: str
    full_project_name: Optional[str] = None
    display_name: Optional[str] = None
    full_display_name: Optional[str] = None
    description: Optional[str] = None
    url: str = ""
    number: int
    start_time_millis: int
    duration_millis: int = 0
    timestamp: Optional[datetime] = None
    result: Optional[str] = None
    execution: Literal["direct", "delegated"] = "direct"
    node: Optional[NodePayload] = None
    upstream: Optional["BuildPayload"] = None
    build_variables: Dict[str, str] = {}
    sensitive_build_variables: Set[str] = set()
    environment_contributors: List[Optional[Dict[str, str]]] = []
    # None means the environment could not be resolved
    environment: Optional[Dict[str, str]] = {}
    test_results: Optional[TestReportPayload] = None
    scm: Optional[ScmReportPayload] = None
    dependencies: Optional[DependencyReportPayload] = None
    image_fingerprints: Optional[ImageFingerprintPayload] = None


BuildPayload.model_rebuild()


class PayloadExecutor:
    """Executor bound to the node named in a payload"""

    def __init__(self, node: Optional[NodePayload]):
        self.node = node


class MapContributor:
    """Environment contributor backed by a fixed variable map"""

    def __init__(self, variables: Dict[str, str]):
        self.variables = variables

    def build_env_vars(self, env: Dict[str, str]) -> None:
        env.update(self.variables)


class PayloadBuild:
    """BuildHandle backed by a BuildPayload"""

    def __init__(self, payload: BuildPayload):
        self.payload = payload

        self.id = payload.id
        self.project_name = payload.project_name
        self.full_project_name = payload.full_project_name or payload.project_name
        self.display_name = payload.display_name or f"#{payload.number}"
        self.full_display_name = payload.full_display_name or f"{payload.project_name} #{payload.number}"
        self.description = payload.description
        self.url = payload.url
        self.number = payload.number
        self.start_time_millis = payload.start_time_millis
        self.timestamp = payload.timestamp or datetime.fromtimestamp(
            payload.start_time_millis / 1000, tz=timezone.utc
        )
        self.executor = PayloadExecutor(payload.node) if payload.node is not None else None
        self.upstream_build = PayloadBuild(payload.upstream) if payload.upstream is not None else None
        self.build_variables = dict(payload.build_variables)
        self.sensitive_build_variables = set(payload.sensitive_build_variables)
        self.environment_contributors = [
            MapContributor(variables) if variables is not None else None
            for variables in payload.environment_contributors
        ]

    @property
    def result(self) -> Optional[str]:
        return self.payload.result

    @property
    def duration_millis(self) -> int:
        return self.payload.duration_millis

    def get_environment(self) -> Dict[str, str]:
        if self.payload.environment is None:
            raise EnvironmentUnavailableError(f"No environment recorded for {self.display_name}")
        return dict(self.payload.environment)

    def get_report(self, kind: ReportKind) -> Optional[Any]:
        reports = {
            ReportKind.TEST_RESULTS: self.payload.test_results,
            ReportKind.SOURCE_CONTROL: self.payload.scm,
            ReportKind.DEPENDENCY: self.payload.dependencies,
            ReportKind.IMAGE_FINGERPRINT: self.payload.image_fingerprints,
        }
        return reports.get(kind)

    def apply(self, update: BuildUpdate) -> None:
        """Record progress reported for the build"""
        for field_name in update.model_fields_set:
            value = getattr(update, field_name)
            if value is not None:
                setattr(self.payload, field_name, value)
