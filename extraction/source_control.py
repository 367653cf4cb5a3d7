"""
Source-control extraction
"""

from typing import Any, Optional

from extraction.base import ReportExtractor
from host.build_handle import ReportKind
from models.pydantic_models import SourceControlSummary


class SourceControlExtractor(ReportExtractor):
    """Builds a SourceControlSummary from an SCM build-data handle"""

    kind = ReportKind.SOURCE_CONTROL

    def empty(self) -> SourceControlSummary:
        return SourceControlSummary.empty()

    def _extract(self, handle: Any) -> SourceControlSummary:
        return SourceControlSummary(
            scm_name=self._read(handle, "scm_name", str, None),
            revision=self._read(handle, "last_build", self._revision, None),
            remote_urls=self._read(handle, "remote_urls", lambda urls: {str(url) for url in urls}, set()),
        )

    def _revision(self, last_build: Any) -> Optional[str]:
        """Revision of the last recorded build entry, in string form"""
        revision = last_build.revision
        if callable(revision):
            revision = revision()
        return None if revision is None else str(revision)
