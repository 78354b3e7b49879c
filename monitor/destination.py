"""Time Machine destination snapshots supplied by the status collaborator."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from monitor.schedule import to_local_naive


@dataclass(frozen=True)
class Destination:
    """A backup target (disk or network share) and its backup history.

    Read-only input: the monitoring core never mutates a destination.
    ``snapshot_dates`` is ordered oldest to newest.
    """
    destination_id: str
    last_known_volume_name: Optional[str] = None
    network_url: Optional[str] = None
    snapshot_dates: Tuple[datetime, ...] = field(default_factory=tuple)

    @property
    def last_backup_date(self) -> Optional[datetime]:
        """Most recent completed backup, if any."""
        if not self.snapshot_dates:
            return None
        return self.snapshot_dates[-1]

    @property
    def identifiers(self) -> List[str]:
        """Identifiers usable with `tmutil destinationinfo -d`, in lookup order."""
        return [i for i in (self.network_url, self.last_known_volume_name) if i]

    @classmethod
    def from_dict(cls, data: dict) -> 'Destination':
        """Create from a preferences-style dictionary.

        Accepts both the Time Machine key spelling (``destinationID``) and
        snake_case. Snapshot dates may be datetimes or ISO strings; dates with a UTC
        offset are converted to naive local time.
        """
        destination_id = data.get("destinationID", data.get("destination_id"))
        if not destination_id:
            raise ValueError("destination record has no identifier")

        raw_dates = data.get("snapshotDates", data.get("snapshot_dates")) or []
        dates = tuple(
            to_local_naive(d if isinstance(d, datetime) else datetime.fromisoformat(d))
            for d in raw_dates
        )
        return cls(
            destination_id=str(destination_id),
            last_known_volume_name=data.get(
                "lastKnownVolumeName", data.get("last_known_volume_name")
            ),
            network_url=data.get("networkURL", data.get("network_url")),
            snapshot_dates=dates,
        )
