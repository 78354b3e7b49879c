"""Backup schedule lookup via `tmutil destinationinfo`."""
from typing import Optional

from config import INTERVALS, ScheduleLookupError, SubprocessError, get_logger
from config.subprocess_cache import SubprocessCache, safe_run
from monitor.destination import Destination
from monitor.schedule import BackupSchedule, parse_auto_backup_interval

logger = get_logger(__name__)


class TimeMachineScheduleLookup:
    """Determines how often Time Machine backs up to a destination.

    Tries the destination's network URL, then its volume name. A failure
    for one identifier moves on to the next; when every identifier fails
    the schedule defaults to daily. Never raises.
    """

    def __init__(self, cache: Optional[SubprocessCache] = None,
                 cache_ttl: float = INTERVALS.SCHEDULE_LOOKUP_CACHE_SECONDS):
        self._cache = cache or SubprocessCache(default_ttl=cache_ttl)
        self._cache_ttl = cache_ttl

    def lookup(self, destination: Destination) -> BackupSchedule:
        for identifier in destination.identifiers:
            try:
                return self._query(identifier)
            except ScheduleLookupError as e:
                logger.warning(
                    f"Could not get destination info for identifier '{identifier}': {e}"
                )

        logger.warning(
            f"Could not determine backup schedule for {destination.destination_id}, "
            "defaulting to daily"
        )
        return BackupSchedule.DAILY

    def _query(self, identifier: str) -> BackupSchedule:
        cmd = ['tmutil', 'destinationinfo', '-d', identifier]
        try:
            result = safe_run(cmd, cache=self._cache, ttl=self._cache_ttl)
        except SubprocessError as e:
            raise ScheduleLookupError(e.message, details=e.details) from e

        if result.returncode != 0:
            raise ScheduleLookupError(
                "tmutil destinationinfo failed",
                details={"returncode": result.returncode,
                         "stderr": (result.stderr or "").strip()[:200]},
            )
        return parse_auto_backup_interval(result.stdout)
