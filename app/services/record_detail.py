"""
Record detail workflow for CareBoard.

Orchestrates one record page: report image selection, analysis of the
uploaded image, persistence of the narrative, and conversion of the
narrative into a Kanban board that is handed to the board page.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Set

from app.core.analysis_client import AnalysisClient, encode_image
from app.core.errors import (
    AnalysisError,
    BoardParseError,
    CareBoardError,
    InvalidUploadError,
)
from app.core.navigation import SCREENING_SCHEDULES, Navigation, Navigator
from app.models.schemas import Record
from app.services.record_store import RecordStore
from app.utils.file_validators import FileValidator, file_validator
from app.utils.logger import get_logger

logger = get_logger("record_detail")

UPLOAD_FAILED_MESSAGE = "Failed to upload and analyze the report. Try again."
BOARD_PARSE_MESSAGE = "Error parsing treatment plan. Please try again."
BOARD_FAILED_MESSAGE = "Failed to process treatment plan."
NO_FILE_MESSAGE = "Please select a report image first."
NO_ANALYSIS_MESSAGE = "No analysis available. Upload a report first."


@dataclass
class UploadArtifact:
    """A selected report image, held only until it is uploaded."""

    filename: str
    content_type: str
    data: bytes

    @property
    def base64_payload(self) -> str:
        return encode_image(self.data)


class _ViewClosed(Exception):
    """Internal signal that a late result arrived after teardown."""


class RecordDetailView:
    """
    State holder for a single record page.

    Tracks two independent in-flight flags, `uploading` and `processing`.
    Both are cleared in `finally` blocks whatever the outcome. Failures
    never propagate: they are logged and surfaced through `alerts`, and
    the failure is kept in `last_error` for the HTTP layer.
    """

    def __init__(
        self,
        record: Record,
        store: RecordStore,
        client: AnalysisClient,
        navigator: Optional[Navigator] = None,
        validator: Optional[FileValidator] = None
    ):
        self.record = record
        self.store = store
        self.client = client
        self.navigator = navigator or Navigator()
        self.validator = validator or file_validator

        self.file: Optional[UploadArtifact] = None
        self.filename = ""
        self.filetype = ""
        self.uploading = False
        self.upload_success = False
        self.processing = False
        self.analysis_result = record.analysis_result or ""
        self.is_modal_open = False

        self.alerts: List[str] = []
        self.last_error: Optional[CareBoardError] = None
        self.closed = False
        self._pending: Set[asyncio.Future] = set()

    # -------------------------------------------------------------------------
    # Upload dialog
    # -------------------------------------------------------------------------

    def open_modal(self) -> None:
        self.is_modal_open = True

    def close_modal(self) -> None:
        self.is_modal_open = False

    def select_file(self, filename: str, content_type: Optional[str], data: bytes) -> bool:
        """
        Hold a selected file for upload.

        Anything that is not an acceptable image is rejected with an alert
        and leaves the current selection untouched.
        """
        is_valid, error = self.validator.validate_image(data, filename, content_type)
        if not is_valid:
            logger.warning("File rejected", record_id=self.record.id, filename=filename)
            self._fail(InvalidUploadError(error or FileValidator.INVALID_IMAGE_MESSAGE))
            return False

        self.file = UploadArtifact(filename=filename, content_type=content_type, data=data)
        self.filename = filename
        self.filetype = content_type
        return True

    # -------------------------------------------------------------------------
    # Workflows
    # -------------------------------------------------------------------------

    async def upload(self) -> bool:
        """
        Analyze the selected image and store the narrative.

        On success the stored board payload is cleared, since it was
        derived from the previous narrative.
        """
        if self.file is None:
            self._fail(InvalidUploadError(NO_FILE_MESSAGE))
            return False
        if self.uploading:
            return False

        self.uploading = True
        self.upload_success = False
        artifact = self.file

        try:
            text = await self._run(
                self.client.analyze_report(artifact.data, artifact.content_type)
            )

            self.analysis_result = text
            self.record = self.store.update_record(
                self.record.id,
                analysis_result=text,
                kanban_records=""
            )

            self.upload_success = True
            self.is_modal_open = False
            self._clear_file()

            logger.info("Report analyzed", record_id=self.record.id, filename=artifact.filename)
            return True

        except _ViewClosed:
            logger.info("Ignoring analysis result for closed view", record_id=self.record.id)
            return False
        except Exception as e:
            logger.error("Upload error", record_id=self.record.id, error=str(e))
            self._fail(AnalysisError(UPLOAD_FAILED_MESSAGE))
            return False
        finally:
            self.uploading = False

    async def process_treatment_plan(self) -> Optional[Navigation]:
        """
        Turn the narrative into a board and navigate to the board page.

        The raw model text is stored as-is; the parsed object travels with
        the navigation. Nothing beyond JSON parseability is checked here.
        """
        if self.processing:
            return None
        if not self.analysis_result:
            self._fail(AnalysisError(NO_ANALYSIS_MESSAGE))
            return None

        self.processing = True

        try:
            text = await self._run(self.client.generate_board(self.analysis_result))

            try:
                parsed = json.loads(text)
            except json.JSONDecodeError as e:
                logger.error("JSON parse error", record_id=self.record.id, error=str(e))
                self._fail(BoardParseError(BOARD_PARSE_MESSAGE))
                return None

            self.record = self.store.update_record(self.record.id, kanban_records=text)
            logger.info("Treatment board generated", record_id=self.record.id)

            return self.navigator.navigate(SCREENING_SCHEDULES, state=parsed)

        except _ViewClosed:
            logger.info("Ignoring board result for closed view", record_id=self.record.id)
            return None
        except Exception as e:
            logger.error("Processing error", record_id=self.record.id, error=str(e))
            self._fail(AnalysisError(BOARD_FAILED_MESSAGE))
            return None
        finally:
            self.processing = False

    def close(self) -> None:
        """Tear the page down, cancelling any outstanding model call."""
        self.closed = True
        for task in list(self._pending):
            task.cancel()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _run(self, call: Awaitable[Any]) -> Any:
        if self.closed:
            if asyncio.iscoroutine(call):
                call.close()
            raise _ViewClosed()

        task = asyncio.ensure_future(call)
        self._pending.add(task)
        try:
            result = await task
        except asyncio.CancelledError:
            if self.closed and task.cancelled():
                raise _ViewClosed()
            raise
        finally:
            self._pending.discard(task)

        if self.closed:
            raise _ViewClosed()
        return result

    def _clear_file(self) -> None:
        self.file = None
        self.filename = ""
        self.filetype = ""

    def _fail(self, error: CareBoardError) -> None:
        self.last_error = error
        self.alerts.append(error.message)
