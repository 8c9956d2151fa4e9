"""
Dataclass for tracking the statistics of a download, including real-time speed.
"""

import time
from dataclasses import dataclass, field


@dataclass
class TransferStats:
    """Tracks statistics for a download session, including real-time speed."""

    bytes_received: int = 0
    retries: int = 0
    completed: bool = False
    error: str | None = None

    # Real-time speed calculation fields
    current_speed_bps: float = 0.0
    peak_speed_bps: float = 0.0
    started_at: float = field(default_factory=time.monotonic, repr=False)
    finished_at: float | None = field(default=None, repr=False)
    _speed_samples: list[float] = field(default_factory=list, repr=False)
    _last_progress_time: float = field(default=0.0, repr=False)
    _last_progress_bytes: int = field(default=0, repr=False)

    def __post_init__(self):
        self._last_progress_time = self.started_at

    @property
    def duration_s(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def average_speed_bps(self) -> float:
        duration = self.duration_s
        return self.bytes_received / duration if duration > 0 else 0.0

    def add_bytes(self, count: int) -> None:
        """Records delivered bytes and refreshes the speed estimate."""
        self.bytes_received += count
        self.update_speed_stats(self.bytes_received)

    def update_speed_stats(self, total_bytes_so_far: int) -> None:
        """
        Updates the download speed based on progress.

        Args:
            total_bytes_so_far: The cumulative total of bytes received.
        """
        now = time.monotonic()
        elapsed = now - self._last_progress_time

        # Update speed roughly twice per second
        if elapsed > 0.5:
            bytes_diff = total_bytes_so_far - self._last_progress_bytes
            if bytes_diff > 0:
                speed = bytes_diff / elapsed
                self._speed_samples.append(speed)
                # Keep a sliding window of the last 10 speed samples
                if len(self._speed_samples) > 10:
                    self._speed_samples.pop(0)

                self.current_speed_bps = sum(self._speed_samples) / len(
                    self._speed_samples
                )
                self.peak_speed_bps = max(self.peak_speed_bps, self.current_speed_bps)

            self._last_progress_time = now
            self._last_progress_bytes = total_bytes_so_far

    def finish(self, error: str | None = None) -> None:
        self.finished_at = time.monotonic()
        self.error = error
        self.completed = error is None
