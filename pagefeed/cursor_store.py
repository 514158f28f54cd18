"""
Cursor Store for incremental crawling.

Tracks, per source, the link of the newest item emitted by the last
successful run and when that run happened. Uses a JSON file for
persistence.
"""
import hashlib
import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse

from pagefeed.models import Cursor

logger = logging.getLogger(__name__)


def source_key(url: str) -> str:
    """
    Build the state key for a source URL.

    Format: "<hostname>-<first 16 hex chars of sha256(url)>".
    """
    hostname = urlparse(url).hostname or "unknown"
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
    return f"{hostname}-{digest}"


class CursorStore:
    """
    Manages per-source resumption cursors.

    State file layout::

        {"sources": {"<source key>": {"last_link": ..., "last_run_at": ...}}}

    When ignore_last is set, reads return None and writes are skipped,
    so a forced full run leaves the stored cursors untouched.
    """

    def __init__(self, state_file: Path, ignore_last: bool = False):
        """
        Initialize cursor store.

        Args:
            state_file: Path to JSON state file
            ignore_last: Ignore stored cursors for this run (IGNORE_LAST=1)
        """
        self.state_file = Path(state_file)
        self.ignore_last = ignore_last
        self.state = self._load_state()

    def _load_state(self) -> Dict:
        """Load state from file, or start empty if the file doesn't exist."""
        if not self.state_file.exists():
            logger.info(f"No state file at {self.state_file}, starting fresh")
            return {'sources': {}}

        try:
            with open(self.state_file, 'r') as f:
                state = json.load(f)
                logger.info(f"Loaded state from {self.state_file}")
        except json.JSONDecodeError as e:
            # Backup corrupted file before it gets overwritten
            backup_path = self.state_file.with_suffix('.json.corrupted')
            logger.error(f"State file corrupted: {e}. Backing up to {backup_path}")
            try:
                shutil.copy2(self.state_file, backup_path)
            except OSError as backup_error:
                logger.warning(f"Failed to backup corrupted state file: {backup_error}")
            return {'sources': {}}

        state.setdefault('sources', {})
        return state

    def _save_state(self, state: Optional[Dict] = None):
        """
        Save state to file atomically.

        Uses write-to-temp-then-rename so an interrupted write never
        leaves a truncated state file behind.

        Raises:
            OSError: If write fails (after logging the error)
        """
        if state is None:
            state = self.state

        self.state_file.parent.mkdir(parents=True, exist_ok=True)

        temp_file = self.state_file.with_suffix('.json.tmp')
        try:
            with open(temp_file, 'w') as f:
                json.dump(state, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.state_file)
        except OSError as e:
            logger.error(f"Failed to save state file: {e}")
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_error:
                    logger.warning(f"Failed to remove temp state file: {cleanup_error}")
            raise

    def get_cursor(self, key: str) -> Cursor:
        """
        Get the stored cursor for a source.

        Args:
            key: Source key (see source_key)

        Returns:
            Stored Cursor, or an empty Cursor if none exists
        """
        entry = self.state['sources'].get(key)
        if not entry:
            return Cursor()

        last_run_at = entry.get('last_run_at')
        return Cursor(
            last_link=entry.get('last_link'),
            last_run_at=datetime.fromisoformat(last_run_at) if last_run_at else None,
        )

    def read_last_link(self, key: str) -> Optional[str]:
        """
        Read the cursor link a run should resume from.

        Returns:
            The stored link, or None on a first run or when ignore_last is set
        """
        if self.ignore_last:
            logger.info("IGNORE_LAST is set, will process up to the item cap")
            return None

        last_link = self.get_cursor(key).last_link
        if last_link is None:
            logger.info(f"No cursor stored for {key}, will process up to the item cap")
        return last_link

    def save_cursor(self, key: str, last_link: str, timestamp: Optional[datetime] = None) -> bool:
        """
        Store the newest emitted link for a source.

        Args:
            key: Source key
            last_link: Link of the first (newest) item of the run's output
            timestamp: Run time (defaults to now, UTC)

        Returns:
            True if the cursor was written, False if skipped
        """
        if self.ignore_last:
            logger.info(f"IGNORE_LAST is set, not saving cursor {last_link}")
            return False

        timestamp = timestamp or datetime.now(timezone.utc)
        self.state['sources'][key] = {
            'last_link': last_link,
            'last_run_at': timestamp.isoformat(),
        }
        self._save_state()

        logger.info(f"Saved cursor for {key}: {last_link}")
        return True
