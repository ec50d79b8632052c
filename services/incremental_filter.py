"""
Debounced, case-insensitive search over processed lines.
"""
import asyncio
from typing import Iterable, List, Optional, Sequence, Tuple

from core.config import get_settings
from core.logger import setup_logger

logger = setup_logger(__name__)


def filter_lines(lines: Sequence[str], query: str) -> List[str]:
    """
    Keep the lines containing the query, ignoring case.
    
    Args:
        lines: Lines in original order
        query: Search text; empty keeps every line
    
    Returns:
        Matching lines in original order
    """
    if not query:
        return list(lines)
    
    needle = query.lower()
    return [line for line in lines if needle in str(line).lower()]


class IncrementalFilter:
    """
    Search state for the line table.
    
    ``query_raw`` follows every edit; ``query_debounced`` catches up once
    no edit arrives for the debounce delay. The filtered view is cached on
    the line set and the debounced query.
    """
    
    def __init__(self, raw_lines: Iterable[str] = (), delay: Optional[float] = None):
        self._delay = get_settings().search_debounce_seconds if delay is None else delay
        self._raw_lines: Tuple[str, ...] = tuple(raw_lines)
        self._lines_version = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._cache_key: Optional[Tuple[int, str]] = None
        self._cache: Tuple[str, ...] = ()
        
        self.query_raw = ""
        self.query_debounced = ""
        self.is_searching = False
        self.recompute_count = 0
    
    @property
    def raw_lines(self) -> Tuple[str, ...]:
        return self._raw_lines
    
    def set_raw_lines(self, lines: Iterable[str]) -> None:
        """Replace the searchable line set (new session)."""
        self._raw_lines = tuple(lines)
        self._lines_version += 1
    
    def update_query(self, query: str) -> None:
        """
        Record an edit and restart the debounce timer.
        
        Must be called from within a running event loop.
        """
        self.is_searching = True
        self.query_raw = query
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._commit)
    
    def clear(self) -> None:
        """Reset the search immediately, without waiting for the debounce."""
        self._cancel_timer()
        self.query_raw = ""
        self.query_debounced = ""
        self.is_searching = False
    
    def close(self) -> None:
        """Cancel any pending timer (teardown)."""
        self._cancel_timer()
    
    @property
    def filtered_lines(self) -> Tuple[str, ...]:
        key = (self._lines_version, self.query_debounced)
        if key != self._cache_key:
            self._cache = tuple(filter_lines(self._raw_lines, self.query_debounced))
            self._cache_key = key
            self.recompute_count += 1
            logger.debug(
                f"Filtered {len(self._raw_lines)} lines by '{self.query_debounced}': "
                f"{len(self._cache)} matches"
            )
        return self._cache
    
    @property
    def status_text(self) -> str:
        if self.is_searching:
            return "Searching..."
        text = f"Found {len(self.filtered_lines)} entries"
        if self.query_raw:
            text += f' for "{self.query_raw}"'
        return text
    
    def _commit(self) -> None:
        self._timer = None
        self.query_debounced = self.query_raw
        self.is_searching = False
    
    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
