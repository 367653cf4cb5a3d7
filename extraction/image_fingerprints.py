"""
Container image fingerprint extraction
"""

from typing import Any

from extraction.base import ReportExtractor
from host.build_handle import ReportKind
from models.pydantic_models import ImageFingerprintSummary


class ImageFingerprintExtractor(ReportExtractor):
    """Builds an ImageFingerprintSummary from a fingerprint handle"""

    kind = ReportKind.IMAGE_FINGERPRINT

    def empty(self) -> ImageFingerprintSummary:
        return ImageFingerprintSummary.empty()

    def _extract(self, handle: Any) -> ImageFingerprintSummary:
        return ImageFingerprintSummary(
            image_ids=self._read(handle, "image_ids", lambda ids: {str(image_id) for image_id in ids}, set())
        )
