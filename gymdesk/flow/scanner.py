"""
gymdesk/flow/scanner.py

Purpose: Keyboard-wedge QR scanner input

- Reassembles scanner keystrokes into a code, ended by Enter
- Discards stray keystrokes after a short idle gap
- Debounces double-fired scans
- Ignores typing inside text fields
- Holds the last result on screen for a fixed display window
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from gymdesk.core.config import settings
from gymdesk.core.logging import get_logger

logger = get_logger(__name__)

END_OF_SCAN_KEYS = ("Enter", "\n", "\r")

ScanCallback = Callable[[str], Awaitable[Any]]
ResultCallback = Callable[[str, Any], None]


class ScanInputHandler:
    """
    Turns a stream of key events into scans.

    Runs on the asyncio event loop; timers are loop.call_later handles and
    are replaced rather than explicitly aborted. Only one scan is handled
    at a time: the debounce window and the is_scanning flag serialize them.

    Usage:
        handler = ScanInputHandler(on_scan=process_scan)
        for key in "BCF-1001":
            await handler.handle_key(key)
        await handler.handle_key("Enter")
    """

    def __init__(
        self,
        on_scan: ScanCallback,
        on_result: Optional[ResultCallback] = None,
        debounce_ms: Optional[int] = None,
        idle_clear_ms: Optional[int] = None,
        display_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_scan = on_scan
        self.on_result = on_result
        self.debounce = (settings.SCAN_DEBOUNCE_MS if debounce_ms is None else debounce_ms) / 1000
        self.idle_clear = (settings.SCAN_IDLE_CLEAR_MS if idle_clear_ms is None else idle_clear_ms) / 1000
        self.display = (settings.SCAN_DISPLAY_MS if display_ms is None else display_ms) / 1000
        self.clock = clock

        self.buffer = ""
        self.scanned_code = ""
        self.is_scanning = False
        self.scan_result: Any = None
        self._last_scan_at: Optional[float] = None
        self._idle_timer: Optional[asyncio.TimerHandle] = None
        self._reset_timer: Optional[asyncio.TimerHandle] = None

    def reset(self) -> None:
        """Back to idle: clears the shown code and result and the buffer."""
        self.scanned_code = ""
        self.is_scanning = False
        self.scan_result = None
        self.buffer = ""

    def close(self) -> None:
        """Cancels pending timers."""
        self._cancel_idle_timer()
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None

    async def handle_key(self, key: str, in_text_field: bool = False) -> Optional[Any]:
        """
        Feeds one key event.

        Args:
            key: A single character, or "Enter" to end the scan
            in_text_field: True when focus is in a text input; the key is ignored

        Returns:
            The scan result when this key completed an accepted scan, else None
        """
        if in_text_field:
            return None

        self._cancel_idle_timer()

        if key in END_OF_SCAN_KEYS:
            return await self._finish_scan()

        if len(key) == 1:
            self.buffer += key
            loop = asyncio.get_running_loop()
            self._idle_timer = loop.call_later(self.idle_clear, self._clear_buffer)

        return None

    async def feed(self, text: str) -> Optional[Any]:
        """Feeds a whole line as typed by the scanner, followed by Enter."""
        for ch in text:
            await self.handle_key(ch)
        return await self.handle_key("Enter")

    async def _finish_scan(self) -> Optional[Any]:
        code = self.buffer.strip()
        self.buffer = ""

        now = self.clock()
        if not code:
            return None
        if self._last_scan_at is not None and now - self._last_scan_at < self.debounce:
            logger.debug("Scan ignored (debounce)")
            return None

        self._last_scan_at = now
        self.is_scanning = True
        self.scanned_code = code

        result = None
        try:
            result = await self.on_scan(code)
            self.scan_result = result
            if self.on_result is not None:
                self.on_result(code, result)
        except Exception as e:
            logger.error(f"QR scan error: {e}", exc_info=True)

        self._schedule_reset()
        return result

    def _schedule_reset(self) -> None:
        if self._reset_timer is not None:
            self._reset_timer.cancel()
        loop = asyncio.get_running_loop()
        self._reset_timer = loop.call_later(self.display, self.reset)

    def _clear_buffer(self) -> None:
        self.buffer = ""
        self._idle_timer = None

    def _cancel_idle_timer(self) -> None:
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None
