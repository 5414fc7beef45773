from collections import defaultdict
from typing import Callable, DefaultDict, List
import asyncio
import logging
logger = logging.getLogger(__name__)

# Event names published by UploadOrchestrator
STATE = "state"                    # (SubmissionState)
PROGRESS = "progress"              # (UploadProgress | None)
BATCH_COMPLETE = "batch_complete"  # (index, total_batches, payload)


class EventEmitter:
    """Event emitter for submission events. Accepts sync and async listeners."""

    def __init__(self):
        self._listeners: DefaultDict[str, List[Callable]] = defaultdict(list)

    def on(self, event_name: str, callback: Callable) -> Callable[[], None]:
        """Subscribe to an event. Returns a function that unsubscribes."""
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)
        return lambda: self.off(event_name, callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if callback in self._listeners.get(event_name, []):
            self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args):
        """Call every listener in subscription order; a failing listener is logged and skipped."""
        for callback in list(self._listeners.get(event_name, [])):
            try:
                result = callback(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Listener for '%s' failed", event_name)
