from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, List, Optional, Set

from pydantic import ValidationError

from src.operator_console.config import settings
from src.operator_console.domain.models.session import (
    ConnectionStatus,
    EvaluationResult,
    Session,
    SessionState,
    StartSessionRequest,
)
from src.operator_console.domain.models.user import UserResponse
from src.operator_console.infra.http.gateway import GatewayError
from src.operator_console.services.simulate.service import SimulateService
from src.operator_console.session.autosave import FormAutosaveCoordinator
from src.operator_console.session.events import ConversationUpdateEvent
from src.operator_console.session.guard import SessionGuard, session_guard, start_key
from src.operator_console.session.notifications import NotificationCenter
from src.operator_console.session.transcript import TranscriptAggregator
from src.operator_console.session.transport import RealtimeTransport

logger = logging.getLogger("session")


class SessionLifecycleController:
    """Drives one training session from start to evaluation.

    States: ``idle -> starting -> active -> ending -> ended``. A failed start
    returns to ``idle``; a failed end returns to ``active`` so the operator can
    try again.

    The start is triggered by :meth:`set_context` once the operator, the task
    and the scenario title are all known. Re-evaluating that trigger is
    harmless: the controller fires it once per key, and the shared
    :class:`SessionGuard` stops any other controller from starting the same
    key while a start is in flight.

    Methods that kick off network work (:meth:`start`, :meth:`end_call`,
    :meth:`maybe_start`) return the task they spawned, or ``None`` when the
    trigger was a no-op.
    """

    def __init__(
        self,
        simulate: SimulateService,
        notifications: Optional[NotificationCenter] = None,
        *,
        guard: Optional[SessionGuard] = None,
        transport: Optional[RealtimeTransport] = None,
        transcript: Optional[TranscriptAggregator] = None,
        autosave: Optional[FormAutosaveCoordinator] = None,
        practice: Optional[bool] = None,
    ) -> None:
        self._simulate = simulate
        self.notifications = notifications or NotificationCenter()
        self._guard = guard or session_guard
        self.transcript = transcript or TranscriptAggregator()
        self.transport = transport or RealtimeTransport()
        self.transport.on_status_change = self._on_connection_status
        self.transport.on_call_ended = self._on_remote_call_ended
        self.transport.on_conversation_update = self._on_conversation_update
        self.autosave = autosave or FormAutosaveCoordinator(
            simulate.update_form,
            lambda: self.session_id,
            self.notifications,
        )
        self._practice = settings.practice_mode if practice is None else practice

        self.user: Optional[UserResponse] = None
        self.task_id: Optional[str] = None
        self.scenario_title: Optional[str] = None
        self.session: Optional[Session] = None
        self._state = SessionState.IDLE
        self._auto_started: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._state_listeners: List[Callable[[SessionState], None]] = []
        self._status_listeners: List[Callable[[ConnectionStatus], None]] = []
        self._ended = asyncio.Event()

    # -- read-only views -------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self.session.session_id if self.session else None

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.transport.status

    @property
    def result(self) -> Optional[EvaluationResult]:
        return self.session.result if self.session else None

    @property
    def start_key(self) -> Optional[str]:
        if self.user is None or not self.task_id or not self.scenario_title:
            return None
        return start_key(self.user.id, self.task_id, self.scenario_title)

    def add_state_listener(self, callback: Callable[[SessionState], None]) -> None:
        self._state_listeners.append(callback)

    def add_status_listener(self, callback: Callable[[ConnectionStatus], None]) -> None:
        self._status_listeners.append(callback)

    async def wait_for_result(self) -> Optional[EvaluationResult]:
        await self._ended.wait()
        return self.result

    # -- start ------------------------------------------------------------

    def set_context(
        self,
        *,
        user: Optional[UserResponse] = None,
        task_id: Optional[str] = None,
        scenario_title: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        """Record whatever part of the start context became known, then
        re-evaluate the auto-start trigger."""

        if user is not None:
            self.user = user
        if task_id is not None:
            self.task_id = task_id
        if scenario_title is not None:
            self.scenario_title = scenario_title
        return self.maybe_start()

    def should_start(self) -> bool:
        key = self.start_key
        return (
            key is not None
            and self._state == SessionState.IDLE
            and self.session_id is None
            and key not in self._auto_started
        )

    def maybe_start(self) -> Optional[asyncio.Task]:
        if not self.should_start():
            return None
        self._auto_started.add(self.start_key)
        return self.start()

    def start(self) -> Optional[asyncio.Task]:
        """Start (or resume) the session for the current context.

        Can be called directly to retry after a failed start.
        """

        key = self.start_key
        if key is None or self._state != SessionState.IDLE or self.session_id is not None:
            return None
        if not self._guard.try_claim(key):
            return None

        self._set_state(SessionState.STARTING)
        return self._spawn(self._run_start(key))

    async def _run_start(self, key: str) -> None:
        assert self.user is not None and self.task_id and self.scenario_title
        request = StartSessionRequest(
            task_id=self.task_id,
            operator_id=self.user.id,
            user_email=self.user.email,
            training=self.scenario_title,
            practice=self._practice,
            phone_number=self.user.phone or None,
        )
        try:
            response = await self._simulate.start(request)
        except (GatewayError, ValidationError):
            logger.exception("Failed to start simulation for %s", key)
            self.notifications.error("Failed to start the simulation.")
            self._set_state(SessionState.IDLE)
            return
        finally:
            self._guard.release(key)

        self.session = Session(
            task_id=response.task_id,
            scenario_title=response.training or self.scenario_title,
            session_id=response.session_id,
            attempt_id=response.attempt_id,
            attempt_number=response.attempt_number,
            mode=response.mode,
            call_handle=response.call_sid,
        )
        if response.dialogue:
            self.transcript.seed(response.dialogue)
        # Saved fields win; edits made while the start was in flight are kept otherwise.
        if response.form:
            self.autosave.load(response.form)
        logger.info(
            "Session %s active (attempt=%s mode=%s key=%s)",
            response.session_id,
            response.attempt_id,
            response.mode,
            key,
        )
        self._set_state(SessionState.ACTIVE)

        if response.call_sid:
            await self.transport.open(response.call_sid)

    # -- text chat --------------------------------------------------------

    async def send_message(self, text: str) -> bool:
        """Text-only turn for sessions without a live voice call."""

        if self._state != SessionState.ACTIVE or not self.session_id:
            self.notifications.warning("Session not started yet.")
            return False
        try:
            response = await self._simulate.chat(self.session_id, text)
        except (GatewayError, ValidationError):
            logger.exception("Chat turn failed for session %s", self.session_id)
            self.notifications.error("Failed to send the message.")
            return False
        for entry in response.dialogue_append:
            self.transcript.append_entry(entry)
        return True

    # -- end --------------------------------------------------------------

    def end_call(self) -> Optional[asyncio.Task]:
        """End the call and request the evaluation.

        No-op unless the session is active; in particular a second trigger
        while the end call is in flight does nothing.
        """

        if self._state != SessionState.ACTIVE or not self.session_id:
            return None
        self._set_state(SessionState.ENDING)
        return self._spawn(self._run_end(self.session_id))

    async def _run_end(self, session_id: str) -> None:
        # Edits still inside the debounce window belong to this attempt.
        await self.autosave.flush()
        try:
            result = await self._simulate.end(session_id)
        except (GatewayError, ValidationError):
            logger.exception("Failed to end session %s", session_id)
            self.notifications.error("Failed to end the call.")
            self._set_state(SessionState.ACTIVE)
            return

        assert self.session is not None
        self.session.result = result
        logger.info("Session %s ended: score=%s status=%s", session_id, result.score, result.status)
        self._set_state(SessionState.ENDED)
        await self.transport.close()
        self._ended.set()

    # -- realtime callbacks -------------------------------------------------

    def _on_connection_status(self, status: ConnectionStatus) -> None:
        if self.session is not None:
            self.session.connection_status = status
        for callback in self._status_listeners:
            callback(status)

    def _on_remote_call_ended(self) -> None:
        self.end_call()

    def _on_conversation_update(self, event: ConversationUpdateEvent) -> None:
        self.transcript.append(event.role, event.content)
        if self.session_id:
            self._spawn(self._mirror(self.session_id, event.role, event.content))

    async def _mirror(self, session_id: str, role: str, content: str) -> None:
        try:
            await self._simulate.append_message(session_id, role, content)
        except Exception:
            logger.exception("Failed to sync message to backend for session %s", session_id)

    # -- teardown -----------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait for every task this controller has spawned so far."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.autosave.wait_idle()

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.autosave.close()
        await self.transport.close()

    # -- internals ----------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        logger.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state
        if self.session is not None:
            self.session.state = state
        for callback in self._state_listeners:
            callback(state)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
