"""Submission of the action the user picked."""

from .base import BaseExchange
from .exceptions import ExchangeError
from .models import Action, ExchangeOutcome, Failure, PinCode, ResultKind, Success, TerminalConfig

ACCEPTED = "OK"


class ActionExchange(BaseExchange):
    """Reports an action to the remote service."""

    async def submit(self, pin: PinCode, action: Action, config: TerminalConfig) -> ExchangeOutcome[ResultKind]:
        """Submit ``action``.

        A completed round-trip always yields ``Success``; the wrapped
        ``ResultKind`` says whether the service accepted the event (body
        exactly ``OK`` after trimming). ``Failure`` means the request itself
        could not be made.
        """
        claims = self._claims(pin, config, "addEvent", eventType=action.label.lower())
        try:
            text = await self._send(claims, config)
        except ExchangeError as e:
            self.logger.error(f"Action submission failed: {e}")
            return Failure(str(e))

        result = ResultKind.SUCCESS if text.strip() == ACCEPTED else ResultKind.FAILURE
        self.logger.info(f"Action {action.id} submitted: {result.value}")
        return Success(result)
