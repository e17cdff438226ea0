from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set

from pydantic import ValidationError

from src.operator_console.config import settings
from src.operator_console.domain.models.report_form import ReportForm
from src.operator_console.infra.http.gateway import GatewayError
from src.operator_console.session.notifications import NotificationCenter
from src.operator_console.session.timers import SingleSlotTimer

logger = logging.getLogger("autosave")

SaveForm = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class FormAutosaveCoordinator:
    """Owns the report form and keeps the gateway's copy eventually in sync.

    All edits go through :meth:`update_field`. Regular edits restart a single
    debounce timer, so a burst of typing is saved once, after
    ``debounce_seconds`` of quiet. Immediate edits (checkboxes) are saved right
    away and leave any pending debounced save alone.

    Every save sends the complete form as it is when the request is built, so
    overlapping saves carry the same or newer data. A failed save keeps the
    local form; the next save includes the unsaved fields.
    """

    def __init__(
        self,
        save_form: SaveForm,
        session_id: Callable[[], Optional[str]],
        notifications: NotificationCenter,
        *,
        debounce_seconds: Optional[float] = None,
        timer: Optional[SingleSlotTimer] = None,
    ) -> None:
        self._save_form = save_form
        self._session_id = session_id
        self._notifications = notifications
        self._debounce_seconds = (
            settings.form_save_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self._timer = timer or SingleSlotTimer()
        self._form = ReportForm()
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def form(self) -> ReportForm:
        return self._form

    @property
    def save_pending(self) -> bool:
        return self._timer.pending

    def load(self, data: Mapping[str, Any]) -> ReportForm:
        """Merge form data saved by the gateway over the current form.

        Unknown keys and values outside a field's vocabulary are skipped so a
        partly stale copy still restores everything it can.
        """

        form = self._form
        for key, value in data.items():
            try:
                form = form.with_field(key, value)
            except (KeyError, ValidationError):
                logger.warning("Skipping saved form field %s=%r", key, value)
        self._form = form
        return form

    def update_field(self, name: str, value: Any, immediate: bool = False) -> Optional[asyncio.Task]:
        """Apply one edit locally and schedule its persistence.

        Raises ``KeyError`` for an unknown field and ``ValidationError`` for a
        value outside the field's vocabulary; the form is unchanged then.
        Returns the save task for immediate edits, ``None`` otherwise.
        """

        self._form = self._form.with_field(name, value)
        if immediate:
            return self._spawn_save()
        self._timer.schedule(self._spawn_save, self._debounce_seconds)
        return None

    def toggle_unit(self, unit: str) -> Optional[asyncio.Task]:
        return self.update_field("extra_units", self._form.toggle_unit(unit), immediate=True)

    async def flush(self) -> bool:
        """Save now if a debounced save is waiting. Returns False on failure."""

        if not self._timer.cancel():
            return True
        return await self.save()

    async def save_now(self) -> bool:
        """Save immediately, replacing any pending debounced save."""

        self._timer.cancel()
        return await self.save()

    async def save(self) -> bool:
        session_id = self._session_id()
        if not session_id:
            self._notifications.warning("Session not started yet.")
            return False

        snapshot = self._form.snapshot()
        try:
            await self._save_form(session_id, snapshot)
        except (GatewayError, ValidationError):
            logger.exception("Failed to save form for session %s", session_id)
            self._notifications.error("Saving the form failed.")
            return False

        logger.debug("Form saved for session %s", session_id)
        self._notifications.success("Form saved")
        return True

    async def wait_idle(self) -> None:
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def close(self) -> None:
        self._timer.cancel()
        await self.wait_idle()

    def _spawn_save(self) -> asyncio.Task:
        task = asyncio.create_task(self.save())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task
