"""
Board rendering for CareBoard.

Groups board tasks under their columns for display. A missing or
malformed payload renders as an empty board.
"""

from typing import Any, Optional

from pydantic import ValidationError

from app.models.schemas import Board, RenderedBoard, RenderedColumn
from app.services.record_store import RecordStore
from app.utils.logger import get_logger

logger = get_logger("board_view")


def parse_board(payload: Any) -> Optional[Board]:
    """Coerce a navigation payload or stored JSON text into a Board."""
    if payload is None or payload == "":
        return None
    try:
        if isinstance(payload, (str, bytes)):
            return Board.model_validate_json(payload)
        return Board.model_validate(payload)
    except ValidationError as e:
        logger.warning("Malformed board payload", errors=e.error_count())
        return None


def render_board(payload: Any) -> RenderedBoard:
    """
    Render a board payload column by column.

    Tasks whose columnId matches no declared column are not listed.
    """
    board = parse_board(payload)
    if board is None:
        return RenderedBoard()

    columns = [
        RenderedColumn(
            id=column.id,
            title=column.title,
            tasks=[task for task in board.tasks if task.column_id == column.id]
        )
        for column in board.columns
    ]
    return RenderedBoard(columns=columns, is_empty=not columns)


def render_stored_board(store: RecordStore, record_id: int) -> RenderedBoard:
    """
    Re-derive a record's board from the raw JSON kept in the store.

    Raises:
        RecordNotFoundError: If the record does not exist
    """
    record = store.get_record(record_id)
    return render_board(record.kanban_records)
