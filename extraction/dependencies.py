"""
Dependency and artifact extraction
Copies the artifact lists and job links of a maven-style report into
snapshot-owned values so later host-side mutation cannot leak in
"""

from typing import Any, Dict, List

from extraction.base import ReportExtractor
from host.build_handle import ReportKind
from models.pydantic_models import ArtifactRecord, DependencyRecord, DependencySummary


class DependencyExtractor(ReportExtractor):
    """Builds a DependencySummary from a dependency report handle"""

    kind = ReportKind.DEPENDENCY

    def empty(self) -> DependencySummary:
        return DependencySummary.empty()

    def _extract(self, handle: Any) -> DependencySummary:
        return DependencySummary(
            deployed_artifacts=self._read(handle, "deployed_artifacts", self._artifacts, []),
            generated_artifacts=self._read(handle, "generated_artifacts", self._artifacts, []),
            downstream_jobs=self._read(handle, "downstream_jobs", self._job_names, []),
            upstream_jobs=self._read(handle, "upstream_builds", self._job_names, []),
            dependencies=self._read(handle, "dependencies", self._dependencies, []),
            downstream_jobs_by_artifact=self._read(
                handle, "downstream_jobs_by_artifact", self._jobs_by_artifact, {}
            ),
        )

    def _artifacts(self, artifacts: Any) -> List[ArtifactRecord]:
        return [ArtifactRecord.model_validate(artifact) for artifact in artifacts]

    def _dependencies(self, dependencies: Any) -> List[DependencyRecord]:
        return [DependencyRecord.model_validate(dependency) for dependency in dependencies]

    def _job_names(self, jobs: Any) -> List[str]:
        return [self._job_name(job) for job in jobs]

    def _jobs_by_artifact(self, mapping: Any) -> Dict[str, List[str]]:
        """Copy the artifact to consuming-jobs map, keyed by coordinates"""
        jobs_by_artifact = {}
        for artifact, jobs in mapping.items():
            if isinstance(artifact, str):
                key = artifact
            else:
                key = ArtifactRecord.model_validate(artifact).coordinates()
            jobs_by_artifact[key] = self._job_names(jobs)
        return jobs_by_artifact

    def _job_name(self, job: Any) -> str:
        """Name of a job given as a string or a job-like object"""
        if isinstance(job, str):
            return job
        for attribute in ("full_name", "name"):
            name = getattr(job, attribute, None)
            if name:
                return str(name)
        raise TypeError(f"Cannot resolve a job name from {type(job).__name__}")
