# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Viewer.scheduler",
#   "purpose": "Serialized, cancellable, latest-wins page rendering",
#   "sections": [
#     {
#       "id": "rendertarget",
#       "name": "RenderTarget",
#       "anchor": "class-rendertarget",
#       "kind": "class"
#     },
#     {
#       "id": "rendertask",
#       "name": "RenderTask",
#       "anchor": "class-rendertask",
#       "kind": "class"
#     },
#     {
#       "id": "renderstate",
#       "name": "RenderState",
#       "anchor": "class-renderstate",
#       "kind": "class"
#     },
#     {
#       "id": "renderscheduler",
#       "name": "RenderScheduler",
#       "anchor": "class-renderscheduler",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Render scheduler.

Responsibilities
----------------
- Own the decoded document handle and the ``(current page, scale)`` state.
- Run at most one render task at a time on a single-worker executor.
- Coalesce bursts of page and zoom changes: a request that differs from the
  in-flight target cancels it and overwrites a single pending slot, so after
  any burst exactly one more render runs, and it targets the latest request.

State Machine
-------------
``Idle``
    ``request_page``/``set_scale`` clamp the target; an unchanged target is a
    no-op, anything else starts a task (``Rendering(target)``).
``Rendering(t)``
    A request for ``t`` while the task is live is a no-op. Any other target
    cancels the task and replaces ``pending``. When the task finishes (painted,
    cancelled or failed) ``pending`` is started, otherwise the scheduler goes
    back to ``Idle``.

Cancellation is cooperative. A task checks its event after obtaining the page
handle, after painting off-screen (the check and the frame commit happen under
the scheduler lock, so a cancelled task never commits) and before extracting
text. :class:`~PdfInsight.Transport.errors.RenderCancelled` never reaches
``on_error``.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from ..Transport.errors import LoadCancelled, RenderCancelled
from .decoder import Decoder, DocumentHandle
from .surface import Surface

__all__ = [
    "ZOOM_LEVELS",
    "DEFAULT_ZOOM",
    "RenderTarget",
    "RenderTask",
    "RenderState",
    "RenderScheduler",
    "normalize_page_text",
]

LOGGER = logging.getLogger(__name__)

ZOOM_LEVELS = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0, 2.5, 3.0)
DEFAULT_ZOOM = 1.0

RenderedCallback = Callable[[int, int, float], None]
ErrorCallback = Callable[[str], None]


def normalize_page_text(text: str) -> str:
    return " ".join(text.split())


@dataclass(frozen=True)
class RenderTarget:
    page: int
    scale: float


class RenderTask:
    """One render attempt for ``target`` with its cancellation signal."""

    def __init__(self, target: RenderTarget) -> None:
        self.target = target
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def checkpoint(self, stage: str) -> None:
        if self._cancel.is_set():
            raise RenderCancelled(f"render of page {self.target.page} cancelled {stage}")


@dataclass(frozen=True)
class RenderState:
    current_page: int
    total_pages: int
    scale: float
    rendering: Optional[RenderTarget]
    pending: Optional[RenderTarget]

    @property
    def idle(self) -> bool:
        return self.rendering is None


class RenderScheduler:
    """Serialize page renders for one document with latest-wins coalescing.

    Args:
        decoder: Produces the document handle in :meth:`load`.
        surface: Destination for committed frames and the text layer.
        on_rendered: ``(page, total_pages, scale)`` after a page is fully shown.
        on_error: Human-readable message when a render fails.
        executor: Executor running render tasks; must not run two tasks at
            once. A private single-worker pool is used when omitted.
    """

    def __init__(
        self,
        decoder: Decoder,
        surface: Optional[Surface] = None,
        *,
        on_rendered: Optional[RenderedCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        executor: Optional[Executor] = None,
        default_zoom: float = DEFAULT_ZOOM,
    ) -> None:
        self._decoder = decoder
        self.surface = surface or Surface()
        self._on_rendered = on_rendered
        self._on_error = on_error
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pdfinsight-render"
        )
        self._default_zoom = default_zoom

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._document: Optional[DocumentHandle] = None
        self._current_page = 1
        self._total_pages = 0
        self._scale = default_zoom
        self._target: Optional[RenderTarget] = None
        self._active: Optional[RenderTask] = None
        self._pending: Optional[RenderTarget] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def load(self, data: bytes) -> int:
        """Decode ``data`` and take ownership of the handle. Returns the page count.

        Raises:
            DecodeFailed: The decoder rejected the bytes.
            LoadCancelled: The scheduler was closed; the new handle is released.
        """

        with self._lock:
            if self._closed:
                raise LoadCancelled("Scheduler is closed")
        document = self._decoder.load(data)
        previous = self._detach()
        if previous is not None:
            previous.close()
        with self._lock:
            closed = self._closed
            if not closed:
                self._document = document
                self._total_pages = document.page_count
                self._current_page = 1
                self._target = None
        if closed:
            document.close()
            raise LoadCancelled("Scheduler closed while loading")
        LOGGER.info("Loaded document with %d pages", document.page_count)
        return document.page_count

    def _detach(self) -> Optional[DocumentHandle]:
        with self._lock:
            if self._active is not None:
                self._active.cancel()
            self._pending = None
        self._idle.wait()
        with self._lock:
            document, self._document = self._document, None
            self._total_pages = 0
            self._target = None
        return document

    def close(self) -> None:
        """Cancel outstanding work, release the document and the executor."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
        document = self._detach()
        if document is not None:
            document.close()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self) -> RenderState:
        with self._lock:
            return RenderState(
                current_page=self._current_page,
                total_pages=self._total_pages,
                scale=self._scale,
                rendering=self._active.target if self._active else None,
                pending=self._pending,
            )

    @property
    def current_page(self) -> int:
        with self._lock:
            return self._current_page

    @property
    def scale(self) -> float:
        with self._lock:
            return self._scale

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._idle.wait(timeout)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request_page(self, page: int) -> bool:
        """Show ``page`` (clamped). Returns True when a render was started or queued."""

        with self._lock:
            if self._document is None or self._closed:
                return False
            self._current_page = max(1, min(page, self._total_pages))
            return self._submit_locked(RenderTarget(self._current_page, self._scale))

    def set_scale(self, scale: float) -> bool:
        if scale <= 0:
            raise ValueError(f"scale must be > 0, got {scale}")
        with self._lock:
            self._scale = scale
            if self._document is None or self._closed:
                return False
            return self._submit_locked(RenderTarget(self._current_page, scale))

    def render_current(self) -> bool:
        """Render the current target even if it was already displayed."""

        with self._lock:
            if self._document is None or self._closed:
                return False
            return self._submit_locked(RenderTarget(self._current_page, self._scale), force=True)

    def zoom_in(self) -> bool:
        scale = self.scale
        index = next((i for i, level in enumerate(ZOOM_LEVELS) if level >= scale), None)
        next_index = 0 if index is None else min(index + 1, len(ZOOM_LEVELS) - 1)
        if ZOOM_LEVELS[next_index] == scale:
            return False
        return self.set_scale(ZOOM_LEVELS[next_index])

    def zoom_out(self) -> bool:
        scale = self.scale
        index = next((i for i, level in enumerate(ZOOM_LEVELS) if level >= scale), None)
        safe_index = len(ZOOM_LEVELS) - 1 if index is None else index
        next_index = max(safe_index - 1, 0)
        if ZOOM_LEVELS[next_index] == scale:
            return False
        return self.set_scale(ZOOM_LEVELS[next_index])

    def reset_zoom(self) -> bool:
        if self.scale == self._default_zoom:
            return False
        return self.set_scale(self._default_zoom)

    def get_page_text(self, page: int) -> str:
        """Whitespace-collapsed text of ``page``; empty when nothing is loaded."""

        with self._lock:
            document = self._document
        if document is None:
            return ""
        return normalize_page_text(document.get_page(page).text())

    # ------------------------------------------------------------------
    # Scheduling core
    # ------------------------------------------------------------------

    def _submit_locked(self, target: RenderTarget, force: bool = False) -> bool:
        """Start or queue ``target``.

        Re-requesting the target of a cancelled in-flight task queues it as
        pending even though it equals the active target, so the latest request
        still wins.
        """

        active = self._active
        if active is None:
            if target == self._target and not force:
                return False
            self._target = target
            self._start_locked(target)
            return True

        self._target = target
        if active.target == target and not active.cancelled:
            self._pending = None
            return False
        active.cancel()
        self._pending = target
        LOGGER.debug("Superseded render of page %d; pending %s", active.target.page, target)
        return True

    def _start_locked(self, target: RenderTarget) -> None:
        task = RenderTask(target)
        self._active = task
        self._idle.clear()
        self._executor.submit(self._run, task, self._document)

    def _run(self, task: RenderTask, document: Optional[DocumentHandle]) -> None:
        try:
            self._render(task, document)
        except RenderCancelled as exc:
            LOGGER.debug("%s", exc)
        except Exception as exc:
            LOGGER.warning("Render of page %d failed: %s", task.target.page, exc, exc_info=True)
            if self._on_error is not None:
                self._on_error(str(exc) or type(exc).__name__)
        finally:
            self._finish(task)

    def _render(self, task: RenderTask, document: Optional[DocumentHandle]) -> None:
        if document is None:
            raise RenderCancelled("document released")
        target = task.target

        page = document.get_page(target.page)
        task.checkpoint("after page handle")

        viewport = page.viewport(target.scale)
        frame = page.render(viewport)
        with self._lock:
            task.checkpoint("after paint")
            self.surface.commit(frame)

        task.checkpoint("before text extraction")
        text = normalize_page_text(page.text())
        with self._lock:
            task.checkpoint("after text extraction")
            self.surface.commit_text(target.page, text)
            total = self._total_pages

        if self._on_rendered is not None:
            self._on_rendered(target.page, total, target.scale)

    def _finish(self, task: RenderTask) -> None:
        with self._lock:
            if self._active is not task:
                return
            self._active = None
            pending, self._pending = self._pending, None
            if pending is not None and self._document is not None and not self._closed:
                self._start_locked(pending)
            else:
                self._idle.set()
