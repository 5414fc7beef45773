"""Core orchestrator - owns the selection and drives batched submissions."""
import asyncio
import logging
from typing import Iterable, List, Optional

from ..exceptions import (
    ConfigurationError,
    SelectionLockedError,
    ValidationError,
)
from ..models import (
    EndpointConfig,
    FileRejection,
    RejectionReason,
    SelectedItem,
    SelectionReport,
    SourceFile,
    UploadConfig,
)
from ..protocols import IFetchClient, IPreviewFactory, IRequestEncoder
from ..services.api_client import JSONAPIClient
from ..services.encoders import get_encoder
from ..services.preview import PreviewService
from ..utils.events import BATCH_COMPLETE, PROGRESS, STATE, EventEmitter
from .batching import plan_batches
from .models import SubmissionOutcome, SubmissionState, UploadProgress
from .selection import SelectionSet

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Upload failed. Please try again."


class UploadOrchestrator:
    """
    Coordinates one guest's selection and its delivery to the endpoint.

    State machine: IDLE -> SUBMITTING -> SUCCEEDED | FAILED. Batches are sent
    strictly one after another; the task suspends once per batch, which is
    where progress is published and cancellation is checked.

    Usage:
        async with UploadOrchestrator(EndpointConfig(url=...)) as uploader:
            report = uploader.add_files(files)
            uploader.on("progress", lambda p: ...)
            outcome = await uploader.submit("Alice & Bob")
    """

    def __init__(
        self,
        endpoint: Optional[EndpointConfig] = None,
        config: Optional[UploadConfig] = None,
        encoder: Optional[IRequestEncoder] = None,
        preview_factory: Optional[IPreviewFactory] = None,
        api_client: Optional[IFetchClient] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            endpoint: Endpoint URL, secret and encoding
            config: Size limits and retry budget
            encoder: Request encoder (default picked from endpoint.encoding)
            preview_factory: Preview handle factory (default PreviewService)
            api_client: Fetch client (default JSONAPIClient, opened in __aenter__)
        """
        self._endpoint = endpoint or EndpointConfig()
        self._config = config or UploadConfig()
        self._encoder = encoder
        self._previews = preview_factory or PreviewService()
        self._api_client = api_client
        self._owns_client = api_client is None

        self.selection = SelectionSet(self._previews)
        self.events = EventEmitter()

        self._name = ""
        self._state = SubmissionState.IDLE
        self._progress: Optional[UploadProgress] = None
        self._cancel_requested = False

    async def __aenter__(self):
        if self._owns_client:
            self._api_client = JSONAPIClient(timeout=self._endpoint.timeout)
            await self._api_client.__aenter__()
        return self

    async def __aexit__(self, *args):
        self.selection.close()
        if self._owns_client and self._api_client:
            await self._api_client.__aexit__(*args)
            self._api_client = None

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def progress(self) -> Optional[UploadProgress]:
        """Set only while a submission is in flight."""
        return self._progress

    @property
    def name(self) -> str:
        return self._name

    @property
    def items(self) -> List[SelectedItem]:
        return self.selection.items()

    @property
    def previews(self) -> IPreviewFactory:
        return self._previews

    def on(self, event_name: str, callback):
        """Subscribe to a submission event; returns an unsubscribe function."""
        return self.events.on(event_name, callback)

    # -- selection and name edits ------------------------------------------

    def _ensure_editable(self) -> None:
        if self._state == SubmissionState.SUBMITTING:
            raise SelectionLockedError("Selection cannot change while uploading")

    def _touch(self) -> None:
        # Editing after a failure accepts a new submission
        if self._state == SubmissionState.FAILED:
            self._state = SubmissionState.IDLE

    def set_name(self, name: str) -> None:
        self._ensure_editable()
        self._name = (name or "")[: self._config.max_name_length]
        self._touch()

    def add_files(self, files: Iterable[SourceFile]) -> SelectionReport:
        """
        Add picked files to the selection.

        Non-images and files over the per-file ceiling are rejected one by one
        with a warning; re-adding an already selected file is a no-op.
        """
        self._ensure_editable()
        report = SelectionReport()
        limit_mb = self._config.max_file_bytes / (1024 * 1024)

        for file in files:
            if not self._config.accepts_type(file.content_type):
                logger.warning("Skipping %s: not an image (%s)", file.name, file.content_type)
                report.rejected.append(FileRejection(
                    file.name, RejectionReason.NOT_IMAGE, f"{file.name}: not an image",
                ))
                continue
            if file.size > self._config.max_file_bytes:
                logger.warning(
                    "Rejecting %s: %d bytes exceeds %.0f MB limit", file.name, file.size, limit_mb
                )
                report.rejected.append(FileRejection(
                    file.name, RejectionReason.TOO_LARGE,
                    f"{file.name}: file too large (max {limit_mb:.0f} MB)",
                ))
                continue
            item = self.selection.insert(file)
            if item is None:
                logger.debug("Ignoring %s: already selected", file.name)
                report.rejected.append(FileRejection(
                    file.name, RejectionReason.DUPLICATE, f"{file.name}: already selected",
                ))
                continue
            report.accepted.append(item)

        if report.accepted:
            self._touch()
        return report

    def remove(self, identity: str) -> bool:
        self._ensure_editable()
        removed = self.selection.remove_by_key(identity)
        if removed:
            self._touch()
        return removed

    def clear(self) -> int:
        self._ensure_editable()
        count = self.selection.clear_all()
        self._touch()
        return count

    def reset(self) -> None:
        """Leave the SUCCEEDED/FAILED display and accept a new session."""
        self._ensure_editable()
        self._state = SubmissionState.IDLE

    def cancel(self) -> bool:
        """
        Stop issuing new batches. Batches already sent are not rolled back.

        Returns False when nothing is in flight.
        """
        if self._state != SubmissionState.SUBMITTING:
            return False
        self._cancel_requested = True
        return True

    # -- submission --------------------------------------------------------

    async def _set_state(self, state: SubmissionState) -> None:
        self._state = state
        await self.events.emit(STATE, state)

    async def _set_progress(self, progress: Optional[UploadProgress]) -> None:
        self._progress = progress
        await self.events.emit(PROGRESS, progress)

    def _validate(self) -> IRequestEncoder:
        if not self._name.strip() or len(self.selection) == 0:
            raise ValidationError("Please enter your name and select at least one photo")
        if not self._endpoint.is_configured:
            raise ConfigurationError("Upload endpoint not configured")
        if self._encoder is None:
            self._encoder = get_encoder(self._endpoint.encoding)
        return self._encoder

    async def submit(self, name: Optional[str] = None) -> SubmissionOutcome:
        """
        Upload the whole selection in sequential batches.

        Args:
            name: Optional new value for the name/subfolder field

        Returns:
            SubmissionOutcome; failures never raise
        """
        if self._state == SubmissionState.SUBMITTING:
            logger.warning("Submit ignored: a submission is already in progress")
            return SubmissionOutcome.busy()

        if name is not None:
            self.set_name(name)

        try:
            encoder = self._validate()
        except (ValidationError, ConfigurationError) as exc:
            logger.warning("Submit rejected: %s", exc)
            return SubmissionOutcome.invalid(str(exc))

        if self._api_client is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

        return await self._run(encoder)

    async def _run(self, encoder: IRequestEncoder) -> SubmissionOutcome:
        items = self.selection.items()
        total = len(items)
        batches = plan_batches(items, self._config.max_batch_bytes, self._config.max_batch_count)
        uploaded = 0
        sent = 0
        responses = []

        self._cancel_requested = False
        await self._set_state(SubmissionState.SUBMITTING)
        await self._set_progress(UploadProgress(0, total))
        logger.info(
            "Uploading %d file(s) in %d batch(es) to '%s'", total, len(batches), self._name.strip()
        )

        try:
            for index, batch in enumerate(batches, start=1):
                if self._cancel_requested:
                    break
                request = encoder.encode(self._endpoint, batch, self._name)
                payload = await self._api_client.fetch_json(
                    request,
                    retries=self._config.batch_retries,
                    base_delay=self._config.retry_base_delay,
                )
                sent += 1
                uploaded += len(batch)
                responses.append(payload)
                logger.info("Batch %d/%d done (%d/%d files)", index, len(batches), uploaded, total)
                await self._set_progress(UploadProgress(uploaded, total))
                await self.events.emit(BATCH_COMPLETE, index, len(batches), payload)
                # Let the loop handle other events before the next request
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            logger.info("Upload task cancelled after %d/%d file(s)", uploaded, total)
            self._cancel_requested = False
            await self._set_progress(None)
            await self._set_state(SubmissionState.IDLE)
            raise
        except Exception as exc:
            message = str(exc) or GENERIC_FAILURE
            logger.error("Upload failed after %d/%d file(s): %s", uploaded, total, message)
            await self._set_progress(None)
            await self._set_state(SubmissionState.FAILED)
            return SubmissionOutcome.fail(message, total, uploaded, sent)

        await self._set_progress(None)

        cancelled = self._cancel_requested and sent < len(batches)
        self._cancel_requested = False
        if cancelled:
            logger.info("Upload cancelled after %d/%d file(s)", uploaded, total)
            await self._set_state(SubmissionState.IDLE)
            return SubmissionOutcome.cancelled(total, uploaded, sent)

        self.selection.clear_all()
        self._name = ""
        await self._set_state(SubmissionState.SUCCEEDED)
        logger.info("Uploaded %d file(s) in %d batch(es)", total, sent)
        return SubmissionOutcome.ok(total, sent, responses)
