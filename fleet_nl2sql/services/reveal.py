"""
Progressive SQL reveal.

The revealer feeds a sink the growing prefix of a string one character at a
time. It knows nothing about how the text was produced and can be disabled
(zero delay) or cancelled mid-way, in which case the full text is emitted once.
"""
import asyncio
from typing import Callable

TextSink = Callable[[str], None]


class SqlRevealer:
    def __init__(self, delay: float = 0.012, enabled: bool = True):
        self.delay = delay
        self.enabled = enabled
        self._cancelled = asyncio.Event()

    @property
    def animated(self) -> bool:
        return self.enabled and self.delay > 0

    def cancel(self):
        """Stop the current reveal, or the next one if none is running; the sink still receives the full text."""
        self._cancelled.set()

    async def reveal(self, text: str, sink: TextSink) -> int:
        """
        Reveal `text` into `sink`.

        Returns:
            Number of sink calls made
        """
        try:
            if not self.animated or not text:
                sink(text)
                return 1

            calls = 0
            for i in range(1, len(text) + 1):
                if self._cancelled.is_set():
                    break
                sink(text[:i])
                calls += 1
                await asyncio.sleep(self.delay)

            if self._cancelled.is_set():
                sink(text)
                calls += 1
            return calls
        finally:
            # A cancel consumed by this reveal must not leak into the next one
            self._cancelled.clear()
