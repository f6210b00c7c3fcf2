"""
Completion Poller
Waits for the upload service to write its CSV output
"""
import os
import time
import logging
from pathlib import Path
from typing import Callable, Optional

from config import Config
from exceptions import OutputTimeoutError

logger = logging.getLogger(__name__)

CSV_PATTERN = '*.csv'


def creation_time(stat_result, os_name: str = os.name) -> float:
    """
    Creation time from a stat result

    st_birthtime where the platform reports it; on Windows st_ctime is the
    creation time; elsewhere fall back to modification time.
    """
    birthtime = getattr(stat_result, 'st_birthtime', None)
    if birthtime is not None:
        return birthtime
    if os_name == 'nt':
        return stat_result.st_ctime
    return stat_result.st_mtime


def created_at(path: Path) -> float:
    """File creation time, as close as the OS reports it"""
    return creation_time(path.stat())


def latest_csv(directory, newer_than: Optional[float] = None) -> Optional[Path]:
    """
    Most recently created *.csv file in directory

    Args:
        directory: Output directory
        newer_than: Only consider files created at or after this epoch time

    Returns:
        Path of the newest file, or None if there is none
    """
    directory = Path(directory)

    if not directory.is_dir():
        return None

    candidates = []
    for path in directory.glob(CSV_PATTERN):
        try:
            timestamp = created_at(path)
        except FileNotFoundError:
            # removed between listing and stat
            continue
        if newer_than is None or timestamp >= newer_than:
            candidates.append((timestamp, path))

    if not candidates:
        return None

    return max(candidates, key=lambda candidate: candidate[0])[1]


class OutputPoller:
    """Poll an output directory for a new CSV file with timeout and backoff"""

    def __init__(
        self,
        directory=None,
        initial_delay: float = None,
        timeout: float = None,
        interval: float = None,
        max_interval: float = None,
        backoff: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            directory: Output directory (defaults to Config.CSV_OUTPUT_DIR)
            initial_delay: Wait before the first scan
            timeout: Give up this many seconds after the first scan
            interval: First wait between scans
            max_interval: Upper bound for the wait between scans
            backoff: Multiplier applied to the interval after each empty scan
            sleep: Sleep function (injected by tests)
            clock: Monotonic clock (injected by tests)
        """
        self.directory = Path(directory or Config.CSV_OUTPUT_DIR)
        self.initial_delay = Config.POLL_INITIAL_DELAY if initial_delay is None else initial_delay
        self.timeout = Config.POLL_TIMEOUT if timeout is None else timeout
        self.interval = Config.POLL_INTERVAL if interval is None else interval
        self.max_interval = Config.POLL_MAX_INTERVAL if max_interval is None else max_interval
        self.backoff = backoff
        self._sleep = sleep
        self._clock = clock

    def await_output(self, newer_than: Optional[float] = None) -> Path:
        """
        Wait for a CSV file to appear

        Args:
            newer_than: Epoch time the request was sent; older files are ignored

        Returns:
            Path of the most recently created CSV file

        Raises:
            OutputTimeoutError: If no file shows up before the timeout
        """
        if self.initial_delay > 0:
            logger.debug(f"Waiting {self.initial_delay}s before scanning {self.directory}")
            self._sleep(self.initial_delay)

        deadline = self._clock() + self.timeout
        interval = self.interval
        scans = 0

        while True:
            scans += 1
            found = latest_csv(self.directory, newer_than)
            if found is not None:
                logger.info(f"Output detected after {scans} scan(s): {found}")
                return found

            remaining = deadline - self._clock()
            if remaining <= 0:
                break

            self._sleep(min(interval, remaining))
            interval = min(interval * self.backoff, self.max_interval)

        logger.error(f"No CSV output in {self.directory} after {scans} scan(s)")
        raise OutputTimeoutError(
            f"No output produced: no {CSV_PATTERN} file appeared in {self.directory} "
            f"within {self.initial_delay + self.timeout:.1f}s"
        )


def request_timestamp() -> float:
    """Epoch timestamp to pass as newer_than for a request sent now"""
    # whole-second floor: some filesystems store creation times at 1s resolution
    return float(int(time.time()))
