"""Subprocess execution with caching and safety features.

Wraps the `tmutil` calls made by the schedule lookup. Destination refreshes
arrive often while the configured backup interval rarely changes, so
results can be cached for a short time-to-live.

Security Note:
    All commands are validated against ALLOWED_SUBPROCESS_COMMANDS and
    shell=False is always used.

Usage:
    from config.subprocess_cache import safe_run, SubprocessCache

    result = safe_run(['tmutil', 'destinationinfo'])

    cache = SubprocessCache(default_ttl=300.0)
    result = safe_run(['tmutil', 'destinationinfo', '-d', 'Backup'], cache=cache, ttl=300.0)
"""

# nosec B404 - subprocess usage is required and validated via allowlist
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from config.constants import ALLOWED_SUBPROCESS_COMMANDS, INTERVALS
from config.exceptions import SubprocessError
from config.logging_config import get_logger, log_subprocess_call

logger = get_logger(__name__)


@dataclass
class CachedResult:
    """Cached subprocess result with metadata."""

    result: subprocess.CompletedProcess
    timestamp: float
    duration_ms: float

    def is_expired(self, ttl: float) -> bool:
        """Check if this cached result has expired."""
        return (time.time() - self.timestamp) >= ttl


class SubprocessCache:
    """Caches successful subprocess results to reduce redundant system calls.

    Thread-safe. Only results with a zero exit code are cached, so a failed
    lookup is retried on the next refresh.

    Example:
        >>> cache = SubprocessCache(default_ttl=300.0)
        >>> result = cache.run(['tmutil', 'destinationinfo', '-d', 'Backup'])
    """

    def __init__(self, default_ttl: float = 5.0, max_cache_size: int = 50):
        self.default_ttl = default_ttl
        self.max_cache_size = max_cache_size
        self._cache: Dict[Tuple[str, ...], CachedResult] = {}
        self._lock = threading.Lock()

    def _make_key(self, cmd: List[str]) -> Tuple[str, ...]:
        return tuple(cmd)

    def _cleanup_expired(self) -> None:
        """Remove expired entries and trim to max_cache_size."""
        expired_keys = [
            key
            for key, cached in self._cache.items()
            if cached.is_expired(self.default_ttl * 2)
        ]
        for key in expired_keys:
            del self._cache[key]

        if len(self._cache) > self.max_cache_size:
            sorted_items = sorted(self._cache.items(), key=lambda x: x[1].timestamp)
            for key, _ in sorted_items[: len(self._cache) - self.max_cache_size]:
                del self._cache[key]

    def run(
        self,
        cmd: List[str],
        ttl: Optional[float] = None,
        bypass_cache: bool = False,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Run a subprocess command with optional caching.

        Args:
            cmd: Command and arguments as list.
            ttl: Time-to-live for cache in seconds. Uses default if not specified.
            bypass_cache: If True, always run the command fresh.
            timeout: Command timeout in seconds.
            **kwargs: Additional arguments passed to subprocess.run().

        Returns:
            subprocess.CompletedProcess with command output.

        Raises:
            SubprocessError: If the command cannot be run or times out.
        """
        ttl = ttl if ttl is not None else self.default_ttl
        timeout = timeout or INTERVALS.SUBPROCESS_TIMEOUT_SECONDS
        key = self._make_key(cmd)

        if not bypass_cache and ttl > 0:
            with self._lock:
                cached = self._cache.get(key)
                if cached is not None and not cached.is_expired(ttl):
                    logger.debug(f"Cache hit for: {' '.join(cmd[:2])}")
                    return cached.result

        start_time = time.time()

        try:
            kwargs.setdefault("capture_output", True)
            kwargs.setdefault("text", True)
            kwargs["timeout"] = timeout

            result = subprocess.run(cmd, **kwargs)  # nosec B603 - Commands validated via allowlist
            duration_ms = (time.time() - start_time) * 1000

            log_subprocess_call(
                logger, cmd, result.returncode, duration_ms, success=(result.returncode == 0)
            )

            if result.returncode == 0 and ttl > 0:
                with self._lock:
                    self._cache[key] = CachedResult(
                        result=result, timestamp=time.time(), duration_ms=duration_ms
                    )
                    self._cleanup_expired()

            return result

        except subprocess.TimeoutExpired as e:
            logger.warning(f"Command timed out after {timeout}s: {cmd}")
            raise SubprocessError(
                f"Command timed out after {timeout}s", command=cmd, details={"timeout": timeout}
            ) from e

        except FileNotFoundError as e:
            logger.error(f"Command not found: {cmd[0]}")
            raise SubprocessError(f"Command not found: {cmd[0]}", command=cmd) from e

        except OSError as e:
            logger.error(f"Subprocess error for {cmd}: {e}")
            raise SubprocessError(f"Subprocess error: {e}", command=cmd) from e


def safe_run(
    cmd: List[str],
    cache: Optional[SubprocessCache] = None,
    ttl: float = 0,
    timeout: Optional[float] = None,
    **kwargs,
) -> subprocess.CompletedProcess:
    """Run a subprocess command with safety checks.

    Validates the command against the allowlist before running it through
    the given cache (or an uncached one-off run).

    Args:
        cmd: Command and arguments as list.
        cache: Cache to run through. A private, uncached run when omitted.
        ttl: Time-to-live for the cached result; 0 disables caching.
        timeout: Command timeout in seconds.
        **kwargs: Additional arguments passed to subprocess.run().

    Raises:
        SubprocessError: If command is not allowed, fails to run, or times out.

    Example:
        >>> result = safe_run(['tmutil', 'destinationinfo'])
        >>> if result.returncode == 0:
        ...     print(result.stdout)
    """
    if not cmd:
        raise SubprocessError("Empty command", command=cmd)

    base_cmd = cmd[0]
    if "/" in base_cmd:
        base_cmd = Path(base_cmd).name

    if base_cmd not in ALLOWED_SUBPROCESS_COMMANDS:
        raise SubprocessError(
            f"Command not in allowlist: {base_cmd}",
            command=cmd,
            details={"allowed": sorted(ALLOWED_SUBPROCESS_COMMANDS)},
        )

    if cache is None:
        cache = SubprocessCache(default_ttl=0)
        ttl = 0
    return cache.run(cmd, ttl=ttl, bypass_cache=ttl <= 0, timeout=timeout, **kwargs)
