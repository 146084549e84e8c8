"""Two-step PIN verification: entitlements first, then the user's name."""

from typing import List

from .base import BaseExchange
from .exceptions import ExchangeError, ProtocolError
from .models import Action, AuthResult, ExchangeOutcome, Failure, PinCode, Success, TerminalConfig


class AuthExchange(BaseExchange):
    """Resolves a PIN into a display name and a list of permitted actions."""

    async def authenticate(self, pin: PinCode, config: TerminalConfig) -> ExchangeOutcome[AuthResult]:
        """Run both lookups; any failure aborts the whole exchange.

        The name lookup is only issued once the event type lookup succeeded,
        and no partial result is returned on failure.
        """
        try:
            events = await self._request(self._claims(pin, config, "getEventTypes"), config)
            names = self._event_type_names(events)

            response = await self._request(self._claims(pin, config, "getName"), config)
            display_name = response.get("name")
            if not isinstance(display_name, str) or not display_name:
                raise ProtocolError("Invalid response for user name")

        except ExchangeError as e:
            self.logger.error(f"Authentication failed: {e}")
            return Failure(str(e))

        actions = tuple(
            Action(id=index, label=name.upper())
            for index, name in enumerate(names, start=1)
        )
        self.logger.info(f"Authenticated user with {len(actions)} permitted action(s)")
        return Success(AuthResult(display_name=display_name, actions=actions))

    @staticmethod
    def _event_type_names(payload) -> List[str]:
        """Validate the ``eventTypeNames`` claim; an empty list is allowed."""
        names = payload.get("eventTypeNames")
        if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
            raise ProtocolError("Invalid response for event types")
        return names
