"""
Engine contract violations.

These are raised by the game transition functions when a caller attempts an
action the current state does not allow. They signal programming or UI errors,
not runtime failures, and are never retried.
"""

from __future__ import annotations


class GameRuleError(Exception):
    """Base class for every illegal engine call."""


class IllegalTransition(GameRuleError):
    """The event is not valid in the current phase."""


class NoBetsPlaced(IllegalTransition):
    """A deal was requested with no active bets."""


class InvalidBet(GameRuleError):
    """Bet amount outside the table limits."""


class InsufficientBalance(GameRuleError):
    """Not enough chips to cover the requested stake."""


class InvalidDoubleDown(GameRuleError):
    """Double down requested on an ineligible hand."""


class InvalidSplit(GameRuleError):
    """Split requested on a hand that is not a matching pair."""


class InvalidBalance(GameRuleError):
    """A balance override would make the chip count negative."""
