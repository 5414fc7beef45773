"""
Preview Service - Single Responsibility: issue and release preview handles.

A handle is an opaque token a shell uses to render a thumbnail without
re-reading the file, the way a browser object URL works. Every handle must be
released exactly once.
"""
import logging
import uuid
from typing import Dict

from ..exceptions import PreviewError
from ..models import SourceFile

logger = logging.getLogger(__name__)


class PreviewService:
    """
    Default preview factory.

    Implements IPreviewFactory. Tracks live handles so double releases and
    leaks are detectable.
    """

    prefix = "preview:"

    def __init__(self):
        self._live: Dict[str, SourceFile] = {}

    def create(self, file: SourceFile) -> str:
        handle = f"{self.prefix}{uuid.uuid4().hex}"
        self._live[handle] = file
        logger.debug("[preview] created %s for %s", handle, file.name)
        return handle

    def revoke(self, handle: str) -> None:
        if self._live.pop(handle, None) is None:
            raise PreviewError(f"Preview handle {handle} is not live")
        logger.debug("[preview] revoked %s", handle)

    def resolve(self, handle: str) -> SourceFile:
        """File behind a live handle, for rendering."""
        try:
            return self._live[handle]
        except KeyError:
            raise PreviewError(f"Preview handle {handle} is not live") from None

    def is_live(self, handle: str) -> bool:
        return handle in self._live

    @property
    def live_count(self) -> int:
        return len(self._live)
