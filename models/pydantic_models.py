"""
Pydantic data models for the build snapshot
Field names are snake_case in Python and camelCase in the emitted JSON
"""

from typing import Any, Dict, List, Optional, Set
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from errors import FieldAlreadySetError


class SnapshotModel(BaseModel):
    """Base for every model emitted in a snapshot document"""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class FailedTest(SnapshotModel):
    """Identifier and error detail of one failed test"""
    full_name: str = Field(..., alias="fullName")
    error_details: Optional[str] = Field(None, alias="errorDetails")


class TestResultSummary(SnapshotModel):
    """Aggregate test counters and the list of failed tests"""
    __test__ = False

    total_count: int = Field(0, alias="totalCount")
    skip_count: int = Field(0, alias="skipCount")
    fail_count: int = Field(0, alias="failCount")
    pass_count: int = Field(0, alias="passCount")
    failed_tests_with_error_detail: List[FailedTest] = Field(
        default_factory=list, alias="failedTestsWithErrorDetail"
    )
    failed_tests: List[str] = Field(default_factory=list, alias="failedTests")

    @classmethod
    def empty(cls) -> "TestResultSummary":
        return cls()


class SourceControlSummary(SnapshotModel):
    """SCM name, current revision and remotes of a build"""
    scm_name: Optional[str] = Field(None, alias="scmName")
    revision: Optional[str] = None
    remote_urls: Set[str] = Field(default_factory=set, alias="remoteUrls")

    @field_serializer("remote_urls")
    def _sorted_remote_urls(self, remote_urls: Set[str]) -> List[str]:
        return sorted(remote_urls)

    @classmethod
    def empty(cls) -> "SourceControlSummary":
        return cls()


class ArtifactRecord(SnapshotModel):
    """Build artifact identified by its maven coordinates"""
    group_id: Optional[str] = Field(None, alias="groupId")
    artifact_id: Optional[str] = Field(None, alias="artifactId")
    version: Optional[str] = None
    base_version: Optional[str] = Field(None, alias="baseVersion")
    type: Optional[str] = None
    classifier: Optional[str] = None
    extension: Optional[str] = None
    file: Optional[str] = None
    url: Optional[str] = None
    snapshot: bool = False

    def coordinates(self) -> str:
        """Render as groupId:artifactId:extension[:classifier]:version"""
        parts = [self.group_id or "", self.artifact_id or "", self.extension or self.type or "jar"]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version or "")
        return ":".join(parts)


class DependencyRecord(ArtifactRecord):
    """Artifact the build depends on"""
    scope: Optional[str] = None
    optional: bool = False


class DependencySummary(SnapshotModel):
    """Artifacts produced and consumed by a build and the jobs linked to them"""
    deployed_artifacts: List[ArtifactRecord] = Field(default_factory=list, alias="deployedArtifacts")
    generated_artifacts: List[ArtifactRecord] = Field(default_factory=list, alias="generatedArtifacts")
    downstream_jobs: List[str] = Field(default_factory=list, alias="downstreamJobs")
    upstream_jobs: List[str] = Field(default_factory=list, alias="upstreamJobs")
    dependencies: List[DependencyRecord] = Field(default_factory=list)
    downstream_jobs_by_artifact: Dict[str, List[str]] = Field(
        default_factory=dict, alias="downstreamJobsByArtifact"
    )

    @classmethod
    def empty(cls) -> "DependencySummary":
        return cls()


class ImageFingerprintSummary(SnapshotModel):
    """Container images associated with a build"""
    image_ids: Set[str] = Field(default_factory=set, alias="imageIDs")

    @field_serializer("image_ids")
    def _sorted_image_ids(self, image_ids: Set[str]) -> List[str]:
        return sorted(image_ids)

    @classmethod
    def empty(cls) -> "ImageFingerprintSummary":
        return cls()


# Fields that keep the first non-null value they receive
SET_ONCE_FIELDS = frozenset({"result", "test_results", "git_info", "maven_info", "docker_info"})


class BuildSnapshot(SnapshotModel):
    """Metadata of a single build execution"""
    id: Optional[str] = None
    result: Optional[str] = None
    project_name: Optional[str] = Field(None, alias="projectName")
    full_project_name: Optional[str] = Field(None, alias="fullProjectName")
    display_name: Optional[str] = Field(None, alias="displayName")
    full_display_name: Optional[str] = Field(None, alias="fullDisplayName")
    description: Optional[str] = None
    url: Optional[str] = None
    build_host: Optional[str] = Field(None, alias="buildHost")
    build_label: Optional[str] = Field(None, alias="buildLabel")
    build_num: int = Field(0, alias="buildNum")
    build_duration: int = Field(0, alias="buildDuration")
    timestamp: Optional[str] = None
    root_project_name: Optional[str] = Field(None, alias="rootProjectName")
    root_full_project_name: Optional[str] = Field(None, alias="rootFullProjectName")
    root_project_display_name: Optional[str] = Field(None, alias="rootProjectDisplayName")
    root_build_num: int = Field(0, alias="rootBuildNum")
    build_variables: Dict[str, str] = Field(default_factory=dict, alias="buildVariables")
    # Always empty: sensitive names are dropped before the snapshot is stored
    sensitive_build_variables: List[str] = Field(default_factory=list, alias="sensitiveBuildVariables")
    test_results: Optional[TestResultSummary] = Field(None, alias="testResults")
    git_info: Optional[SourceControlSummary] = Field(None, alias="gitInfo")
    maven_info: Optional[DependencySummary] = Field(None, alias="mavenInfo")
    docker_info: Optional[ImageFingerprintSummary] = Field(None, alias="dockerInfo")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in SET_ONCE_FIELDS and getattr(self, name) is not None:
            raise FieldAlreadySetError(name)
        super().__setattr__(name, value)

    def is_set(self, name: str) -> bool:
        """Check whether a set-once field already holds a value"""
        return getattr(self, name) is not None

    def offer(self, name: str, value: Any) -> bool:
        """
        Store a value in a set-once field if it is still unset

        Args:
            name: One of SET_ONCE_FIELDS
            value: Candidate value, ignored when None

        Returns:
            True if the value was stored
        """
        if name not in SET_ONCE_FIELDS:
            raise KeyError(f"'{name}' is not a set-once field")
        if value is None or self.is_set(name):
            return False
        setattr(self, name, value)
        return True
