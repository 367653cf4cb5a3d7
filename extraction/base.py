"""
Shared behaviour of the sub-report extractors
"""

import logging
from typing import Any, Callable, Optional, TypeVar

from host.build_handle import ReportKind, kind_of

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReportExtractor:
    """Turns one optional report handle into a typed, null-safe summary"""

    kind: ReportKind = ReportKind.UNKNOWN

    def extract(self, handle: Optional[Any] = None):
        """
        Extract a summary from a report handle

        Args:
            handle: Report handle supplied by the host, or None

        Returns:
            The populated summary, or the empty summary when the handle
            is missing or of another kind
        """
        if handle is None or kind_of(handle) is not self.kind:
            return self.empty()
        return self._extract(handle)

    def empty(self):
        raise NotImplementedError

    def _extract(self, handle: Any):
        raise NotImplementedError

    def _read(self, handle: Any, attribute: str, convert: Callable[[Any], T], default: T) -> T:
        """Read and convert one attribute, falling back to default when unusable"""
        try:
            value = getattr(handle, attribute)
            if callable(value):
                value = value()
            if value is None:
                return default
            return convert(value)
        except Exception as e:
            logger.debug("Unreadable %s.%s on %s report: %s", type(handle).__name__, attribute, self.kind.value, e)
            return default
