from typing import Callable, List, Optional
import asyncio
import logging

from ..models import ProgressEvent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], object]


class ProgressEmitter:
    """Fans progress events out to sync or async listeners."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._listeners: List[ProgressCallback] = []
        if callback is not None:
            self.on(callback)

    def on(self, callback: ProgressCallback):
        """Subscribe to progress events."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    async def emit(self, event: ProgressEvent):
        """Deliver an event to all listeners; listener errors are logged, not raised."""
        for callback in self._listeners[:]:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error("Error in progress listener for %s: %s", event.type.value, e)
