"""Kiosk session state machine."""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from exchange import (
    ActionExchange, AuthExchange, AuthResult, ConfigError, Failure, PinCode, ResultKind,
    TerminalConfig,
)
from .scheduler import ResetScheduler
from .states import ABANDONABLE_STATES, TIMED_STATES, SessionSnapshot, SessionState

DEFAULT_ERROR_MESSAGE = "Something went wrong"


class KioskSession:
    """Drives one terminal through PIN entry, authentication and submission.

    Events are handled one at a time on the event loop. The exchanges are
    awaited inline; the state is switched to ``AUTHENTICATING`` or
    ``SUBMITTING`` before the await, so events arriving meanwhile are
    rejected by the state checks rather than by a lock.
    """

    def __init__(
        self,
        config_store: Any,
        auth_exchange: AuthExchange,
        action_exchange: ActionExchange,
        result_display_seconds: float = 2.0,
        error_display_seconds: float = 3.0,
    ):
        """Initialize session.

        Args:
            config_store: Object exposing ``get(key)`` for the terminal keys
            auth_exchange: PIN verification exchange
            action_exchange: Action submission exchange
            result_display_seconds: How long a result stays on screen
            error_display_seconds: How long an error stays on screen
        """
        self.config_store = config_store
        self.auth_exchange = auth_exchange
        self.action_exchange = action_exchange
        self.result_display_seconds = result_display_seconds
        self.error_display_seconds = error_display_seconds
        self.logger = logging.getLogger(__name__)

        self.state = SessionState.CONFIG_MISSING
        self.config: Optional[TerminalConfig] = None
        self._config_stale = False

        # Per-session data, cleared on every reset
        self.pin = PinCode()
        # Bumped on every reset; exchange outcomes from an earlier round are dropped
        self._round = 0
        self.auth_result: Optional[AuthResult] = None
        self.result: Optional[ResultKind] = None
        self.error_message: Optional[str] = None

        self.scheduler = ResetScheduler()
        self.state_change_callbacks: List[Callable] = []

    async def initialize(self, open_config_editor: bool = False) -> SessionState:
        """Load configuration and enter the first screen."""
        if open_config_editor:
            self._load_config()
            await self._transition(SessionState.CONFIG_EDITING)
        elif self._load_config():
            await self._transition(SessionState.IDLE)
        else:
            await self._transition(SessionState.CONFIG_MISSING)
        return self.state

    def _load_config(self) -> bool:
        """Read the terminal config from the store; False when unusable."""
        try:
            self.config = TerminalConfig.from_store(self.config_store)
        except ConfigError as e:
            self.logger.warning(f"Terminal configuration unavailable: {e}")
            self.config = None
            return False

        self._config_stale = False
        self.logger.info(f"Terminal configuration loaded (client {self.config.client_id})")
        return True

    # User events

    async def start(self) -> bool:
        """Leave the welcome screen and start collecting the PIN."""
        if self.state != SessionState.IDLE:
            self.logger.debug(f"Ignoring start in state {self.state.name}")
            return False

        await self._transition(SessionState.COLLECTING_PIN)
        return True

    async def append_digit(self, digit: str) -> bool:
        """Add one keypad digit; the fourth digit triggers authentication."""
        if self.state != SessionState.COLLECTING_PIN:
            self.logger.debug(f"Ignoring digit in state {self.state.name}")
            return False

        if not self.pin.append(digit):
            self.logger.debug("Ignoring digit: PIN full or not a digit")
            return False

        if not self.pin.is_complete:
            await self._notify_state_change()
            return True

        await self._transition(SessionState.AUTHENTICATING)
        await self._authenticate()
        return True

    async def select_action(self, action_id: int) -> bool:
        """Submit the chosen action; only ids from the resolved list are valid."""
        if self.state != SessionState.SELECTING_ACTION or self.auth_result is None:
            self.logger.debug(f"Ignoring action selection in state {self.state.name}")
            return False

        action = self.auth_result.find_action(action_id)
        if action is None:
            self.logger.warning(f"Ignoring unknown action id {action_id}")
            return False

        await self._transition(SessionState.SUBMITTING)
        current_round = self._round
        try:
            outcome = await self.action_exchange.submit(self.pin.copy(), action, self.config)
        except Exception as e:
            self.logger.error(f"Unexpected error while submitting action: {e}", exc_info=True)
            outcome = Failure(str(e))

        if current_round != self._round:
            self.logger.warning("Discarding submission outcome of an abandoned session")
            return True

        if outcome.ok:
            await self._show_result(outcome.value)
        else:
            await self._show_error(outcome.reason)
        return True

    async def _authenticate(self) -> None:
        """Run the PIN exchange and move to action selection or error."""
        current_round = self._round
        try:
            outcome = await self.auth_exchange.authenticate(self.pin.copy(), self.config)
        except Exception as e:
            self.logger.error(f"Unexpected error while authenticating: {e}", exc_info=True)
            outcome = Failure(str(e))

        if current_round != self._round:
            self.logger.warning("Discarding authentication outcome of an abandoned session")
            return

        if outcome.ok:
            self.auth_result = outcome.value
            await self._transition(SessionState.SELECTING_ACTION)
        else:
            await self._show_error(outcome.reason)

    # Timed screens

    async def _show_result(self, result: ResultKind) -> None:
        self.result = result
        self.scheduler.schedule(self.result_display_seconds, self._auto_reset)
        await self._transition(SessionState.SHOWING_RESULT)

    async def _show_error(self, message: str) -> None:
        self.error_message = message or DEFAULT_ERROR_MESSAGE
        self.scheduler.schedule(self.error_display_seconds, self._auto_reset)
        await self._transition(SessionState.SHOWING_ERROR)

    async def _auto_reset(self) -> None:
        """Deadline of a result or error screen."""
        if self.state not in TIMED_STATES:
            self.logger.debug(f"Ignoring auto-reset in state {self.state.name}")
            return
        await self._reset_session()

    async def reset(self) -> bool:
        """Abandon the current session and return to the welcome screen.

        Only PIN entry and action selection can be abandoned; running
        exchanges and the timed result and error screens finish on their own.
        """
        if self.state not in ABANDONABLE_STATES:
            self.logger.debug(f"Ignoring reset in state {self.state.name}")
            return False

        self.scheduler.cancel()
        await self._reset_session()
        return True

    async def _reset_session(self) -> None:
        """Clear all per-session data."""
        self._round += 1
        self.pin.clear()
        self.auth_result = None
        self.result = None
        self.error_message = None

        if self._config_stale:
            self._load_config()

        await self._transition(SessionState.IDLE if self.config else SessionState.CONFIG_MISSING)

    # Configuration screens

    async def open_config_editor(self) -> bool:
        """Enter the configuration editor from the welcome or missing-config screen."""
        if self.state not in (SessionState.IDLE, SessionState.CONFIG_MISSING):
            self.logger.debug(f"Ignoring config edit request in state {self.state.name}")
            return False

        await self._transition(SessionState.CONFIG_EDITING)
        return True

    async def close_config_editor(self) -> bool:
        """Leave the editor, re-reading the configuration."""
        if self.state != SessionState.CONFIG_EDITING:
            return False

        if self._load_config():
            await self._transition(SessionState.IDLE)
        else:
            await self._transition(SessionState.CONFIG_MISSING)
        return True

    async def reload_config(self) -> None:
        """Pick up a configuration change made outside the editor.

        Applied at once on the welcome and missing-config screens, otherwise
        on the next reset so an ongoing session keeps its config.
        """
        if self.state == SessionState.IDLE:
            if not self._load_config():
                await self._transition(SessionState.CONFIG_MISSING)
        elif self.state == SessionState.CONFIG_MISSING:
            if self._load_config():
                await self._transition(SessionState.IDLE)
        elif self.state != SessionState.CONFIG_EDITING:
            self.logger.info("Configuration changed, applying after this session")
            self._config_stale = True

    # Presentation boundary

    def snapshot(self) -> SessionSnapshot:
        """Current screen and the data needed to render it."""
        actions = list(self.auth_result.actions) if self.auth_result else []
        return SessionSnapshot(
            state=self.state,
            pin_length=len(self.pin),
            display_name=self.auth_result.display_name if self.auth_result else None,
            actions=actions,
            result=self.result,
            error_message=self.error_message,
            reset_in=self.scheduler.remaining(),
        )

    async def _transition(self, new_state: SessionState) -> None:
        old_state = self.state
        self.state = new_state
        if old_state != new_state:
            self.logger.info(f"Session state: {old_state.name} -> {new_state.name}")
        await self._notify_state_change()

    def add_state_change_callback(self, callback: Callable) -> None:
        """Add callback receiving a :class:`SessionSnapshot` on every change."""
        self.state_change_callbacks.append(callback)

    def remove_state_change_callback(self, callback: Callable) -> None:
        """Remove state change callback."""
        if callback in self.state_change_callbacks:
            self.state_change_callbacks.remove(callback)

    async def _notify_state_change(self) -> None:
        snapshot = self.snapshot()
        for callback in self.state_change_callbacks:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(snapshot)
                else:
                    callback(snapshot)
            except Exception as e:
                self.logger.error(f"State change callback error: {e}")

    async def shutdown(self) -> None:
        """Cancel pending timers."""
        self.scheduler.cancel()
