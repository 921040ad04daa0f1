from __future__ import annotations

import enum
import logging
from typing import Optional, Tuple

from sketchbox.paint.canvas import THUMBNAIL_SIZE, DrawingCanvas, StrokeDecodeError
from sketchbox.settings import ToolState
from sketchbox.storage import DrawingRepository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"


class SessionState(enum.Enum):
    NEW = "new"
    DIRTY = "dirty"
    CLEAN = "clean"
    CLOSED = "closed"


class LoadStatus(enum.Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"


class SaveStatus(enum.Enum):
    SAVED = "saved"
    TITLE_REQUIRED = "title_required"
    FAILED = "failed"


class CloseAction(enum.Enum):
    CLOSED = "closed"
    PROMPT = "prompt"


class SessionClosedError(RuntimeError):
    pass


def _needs_title(title: str) -> bool:
    stripped = title.strip()
    return not stripped or stripped == DEFAULT_TITLE


class DrawingSession:
    """Lifecycle of one open drawing: load, edit, save and close.

    A session starts unbound (``record_id is None``) or is bound by
    :meth:`load`. The first successful save of an unbound session creates
    a record and binds its id. Edits arrive through the canvas change sink
    and through :meth:`clear`, :meth:`undo`, :meth:`redo` and
    :meth:`rename`; each one leaves the session dirty until the next save.
    """

    def __init__(
        self,
        repository: DrawingRepository,
        canvas: DrawingCanvas,
        tool_state: Optional[ToolState] = None,
        thumbnail_size: Tuple[int, int] = THUMBNAIL_SIZE,
    ) -> None:
        self.repository = repository
        self.canvas = canvas
        self.tool_state = tool_state if tool_state is not None else ToolState()
        self.thumbnail_size = thumbnail_size
        self.record_id: Optional[str] = None
        self.title = DEFAULT_TITLE
        self.dirty = False
        self.closed = False
        self.canvas.subscribe(self.mark_dirty)

    @property
    def state(self) -> SessionState:
        if self.closed:
            return SessionState.CLOSED
        if self.dirty:
            return SessionState.DIRTY
        if self.record_id is None:
            return SessionState.NEW
        return SessionState.CLEAN

    @property
    def is_new(self) -> bool:
        return self.record_id is None

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError("drawing session is closed")

    def load(self, record_id: str) -> LoadStatus:
        self._ensure_open()
        record = self.repository.get(record_id)
        if record is None:
            logger.warning("Drawing %s not found; starting empty", record_id)
            self.record_id = None
            self.title = DEFAULT_TITLE
            self.canvas.load_strokes([])
            self.dirty = False
            return LoadStatus.NOT_FOUND

        self.record_id = record.id
        self.title = record.title or DEFAULT_TITLE
        self.dirty = False
        try:
            self.canvas.load_data(record.drawing_data)
        except StrokeDecodeError as exc:
            logger.warning("Drawing %s could not be decoded: %s", record_id, exc)
            self.canvas.load_strokes([])
            return LoadStatus.UNREADABLE
        return LoadStatus.LOADED

    def mark_dirty(self) -> None:
        if not self.closed:
            self.dirty = True

    def rename(self, title: str) -> None:
        self._ensure_open()
        if title != self.title:
            self.title = title
            self.mark_dirty()

    def save(self, title: Optional[str] = None) -> SaveStatus:
        self._ensure_open()
        if title is not None:
            self.rename(title)
        if self.record_id is None and _needs_title(self.title):
            return SaveStatus.TITLE_REQUIRED

        data = self.canvas.data()
        thumbnail = self.canvas.render_thumbnail(self.thumbnail_size)
        if self.record_id is None:
            record_id = self.repository.create(self.title.strip(), data, thumbnail)
            if record_id is None:
                return SaveStatus.FAILED
            self.record_id = record_id
        else:
            stored_title = self.title.strip() or DEFAULT_TITLE
            if not self.repository.update(self.record_id, data, thumbnail, title=stored_title):
                return SaveStatus.FAILED
            self.title = stored_title
        self.dirty = False
        return SaveStatus.SAVED

    def clear(self) -> None:
        self._ensure_open()
        self.canvas.clear()
        self.mark_dirty()

    def undo(self) -> None:
        self._ensure_open()
        self.canvas.undo()
        self.mark_dirty()

    def redo(self) -> None:
        self._ensure_open()
        self.canvas.redo()
        self.mark_dirty()

    def request_close(self) -> CloseAction:
        self._ensure_open()
        if self.dirty:
            return CloseAction.PROMPT
        self._close()
        return CloseAction.CLOSED

    def close_with_save(self, title: Optional[str] = None) -> SaveStatus:
        status = self.save(title)
        if status is SaveStatus.SAVED:
            self._close()
        return status

    def discard_and_close(self) -> None:
        self._ensure_open()
        self._close()

    def _close(self) -> None:
        self.canvas.unsubscribe(self.mark_dirty)
        self.closed = True
