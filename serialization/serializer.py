"""
Snapshot serialization
Renders snapshots as canonical JSON documents and parses them back
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from configuration.settings import DateFormatter
from models.pydantic_models import BuildSnapshot

ENVELOPE_VERSION = 1


class SnapshotSerializer:
    """Converts BuildSnapshot objects to and from JSON"""

    def __init__(self, date_formatter: Optional[DateFormatter] = None):
        self.date_formatter = date_formatter or DateFormatter()

    def to_dict(self, snapshot: BuildSnapshot) -> Dict[str, Any]:
        """Plain JSON-compatible dict with camelCase keys; absent sections stay null"""
        return snapshot.model_dump(mode="json", by_alias=True)

    def to_json(self, snapshot: BuildSnapshot) -> str:
        return json.dumps(self.to_dict(snapshot), separators=(",", ":"))

    def from_dict(self, data: Dict[str, Any]) -> BuildSnapshot:
        return BuildSnapshot.model_validate(data)

    def from_json(self, text: str) -> BuildSnapshot:
        return BuildSnapshot.model_validate_json(text)

    def to_envelope(self, snapshot: BuildSnapshot, message: Optional[List[str]] = None,
                    source: str = "jenkins", source_host: Optional[str] = None,
                    now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Wrap a snapshot in the delivery envelope shipped to log stores

        Args:
            snapshot: Snapshot to wrap
            message: Log lines delivered with the build data
            source: Name of the producing system
            source_host: Root URL of the producing system
            now: Delivery instant, defaults to the current time

        Returns:
            Envelope dict; the build timestamp moves to '@buildTimestamp'
        """
        data = self.to_dict(snapshot)
        build_timestamp = data.pop("timestamp", None)

        return {
            "data": data,
            "message": list(message or []),
            "source": source,
            "source_host": source_host,
            "@buildTimestamp": build_timestamp,
            "@timestamp": self.date_formatter.format(now or datetime.now(timezone.utc)),
            "@version": ENVELOPE_VERSION,
        }
