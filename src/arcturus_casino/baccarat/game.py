"""
BaccaratGame — stateful table wrapper around the pure transition function.

Usage:
    game = BaccaratGame(initial_balance=1000)
    game.place_bet(BetType.PLAYER, 50)
    outcome = game.deal()
    print(outcome.winner, game.balance)
    game.new_round()
"""

from __future__ import annotations

from collections.abc import Callable

from arcturus_casino.deck import DeckManager, baccarat_shoe
from arcturus_casino.baccarat.game_state import (
    DEFAULT_MAX_BET,
    DEFAULT_MIN_BET,
    DEFAULT_STARTING_CHIPS,
    BaccaratState,
    ClearBets,
    Deal,
    Effect,
    Event,
    NewRound,
    Phase,
    PlaceBet,
    RemoveBet,
    RoundComplete,
    RoundOutcome,
    SetBalance,
    UpdateSettings,
    transition,
)
from arcturus_casino.baccarat.hand import Winner
from arcturus_casino.baccarat.payout import BetType

Listener = Callable[[Effect], None]


class BaccaratGame:
    """One baccarat table: current state, eight-deck shoe and listeners."""

    def __init__(
        self,
        initial_balance: int = DEFAULT_STARTING_CHIPS,
        min_bet: int = DEFAULT_MIN_BET,
        max_bet: int = DEFAULT_MAX_BET,
        deck: DeckManager | None = None,
    ) -> None:
        self.deck = deck if deck is not None else baccarat_shoe()
        self._state = BaccaratState(balance=initial_balance, min_bet=min_bet, max_bet=max_bet)
        self._listeners: list[Listener] = []

    @property
    def state(self) -> BaccaratState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def balance(self) -> int:
        return self._state.balance

    @property
    def committed_balance(self) -> int:
        """Balance plus any stake already taken off it for the coup in play."""
        if self._state.phase in (Phase.BETTING, Phase.RESOLUTION):
            return self._state.balance
        return self._state.balance + self._state.bet_total

    @property
    def min_bet(self) -> int:
        return self._state.min_bet

    @property
    def max_bet(self) -> int:
        return self._state.max_bet

    @property
    def shoe_cards_remaining(self) -> int:
        return self.deck.remaining_cards()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, event: Event) -> tuple[Effect, ...]:
        new_state, effects = transition(self._state, event, self.deck)
        self._state = new_state
        for effect in effects:
            for listener in list(self._listeners):
                listener(effect)
        return effects

    # ── Betting ───────────────────────────────────────────────────────────────

    def place_bet(self, bet_type: BetType, amount: int) -> None:
        self.dispatch(PlaceBet(bet_type, amount))

    def remove_bet(self, bet_type: BetType) -> bool:
        """Take a bet back. Returns False outside betting or if no such bet."""
        if self._state.phase is not Phase.BETTING:
            return False
        return bool(self.dispatch(RemoveBet(bet_type)))

    def clear_bets(self) -> None:
        if self._state.phase is Phase.BETTING:
            self.dispatch(ClearBets())

    @property
    def bet_total(self) -> int:
        return self._state.bet_total

    def can_deal(self) -> bool:
        return self._state.phase is Phase.BETTING and bool(self._state.active_bets)

    # ── Play ──────────────────────────────────────────────────────────────────

    def deal(self, timestamp: float | None = None) -> RoundOutcome:
        """Play out a full coup and return its outcome.

        Raises:
            NoBetsPlaced: If no bet is on the table.
        """
        effects = self.dispatch(Deal(timestamp))
        for effect in effects:
            if isinstance(effect, RoundComplete):
                return effect.outcome
        raise RuntimeError("Deal finished without a round outcome")

    def new_round(self) -> None:
        self.dispatch(NewRound())

    def set_balance(self, amount: int) -> bool:
        if amount < 0 or self._state.phase not in (Phase.BETTING, Phase.RESOLUTION):
            return False
        self.dispatch(SetBalance(amount))
        return True

    def update_settings(self, min_bet: int | None = None, max_bet: int | None = None) -> None:
        self.dispatch(UpdateSettings(min_bet, max_bet))

    def update_bet_limits(self, min_bet: int, max_bet: int) -> None:
        self.update_settings(min_bet, max_bet)

    # ── History queries ───────────────────────────────────────────────────────

    @property
    def outcome_history(self) -> tuple[RoundOutcome, ...]:
        """Last 20 coups, newest first."""
        return self._state.history

    @property
    def last_outcome(self) -> RoundOutcome | None:
        return self._state.history[0] if self._state.history else None

    @property
    def winner(self) -> Winner | None:
        last = self.last_outcome
        return last.winner if last is not None else None

    def statistics(self) -> dict[Winner, int]:
        counts = {w: 0 for w in Winner}
        for outcome in self._state.history:
            counts[outcome.winner] += 1
        return counts

    def has_insufficient_chips(self) -> bool:
        return self._state.balance < self._state.min_bet
