"""
BlackjackGame — stateful table wrapper around the pure transition function.

The wrapper holds the current BlackjackState and a DeckManager, applies one
event per call and forwards the resulting effects to subscribed listeners
(the UI, a logger, tests). It adds the query helpers a table UI needs:
which actions are available, and why an action is greyed out.

Usage:
    game = BlackjackGame(initial_balance=1000)
    game.place_bet(50)
    game.deal()
    if game.phase is Phase.PLAYER_TURN:
        game.stand()
    if game.phase is Phase.DEALER_TURN:
        game.play_dealer_turn()
    outcomes = game.settle_round()
    game.start_new_round()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from arcturus_casino.deck import DeckManager, blackjack_deck
from arcturus_casino.blackjack.game_state import (
    DEFAULT_MAX_BET,
    DEFAULT_MIN_BET,
    DEFAULT_STARTING_CHIPS,
    BlackjackState,
    Deal,
    DoubleDown,
    Effect,
    Event,
    HandOutcome,
    Hit,
    NextHand,
    Phase,
    PlaceBet,
    PlayDealerTurn,
    PlayerAction,
    RoundSettled,
    SetBalance,
    Settle,
    Split,
    Stand,
    StartNewRound,
    UpdateBetLimits,
    transition,
)
from arcturus_casino.blackjack.hand import (
    DOUBLE_DOWN_TOTALS,
    calculate_hand_value,
    can_double_down,
    can_split,
)

logger = logging.getLogger(__name__)

Listener = Callable[[Effect], None]


@dataclass(frozen=True)
class ActionAvailability:
    available: bool
    reason: str | None = None


class BlackjackGame:
    """One blackjack table: current state, card source and effect listeners.

    Args:
        initial_balance: Starting chip count.
        min_bet: Minimum stake per hand.
        max_bet: Maximum stake per hand.
        deck: Card source; defaults to a freshly shuffled single deck.
    """

    def __init__(
        self,
        initial_balance: int = DEFAULT_STARTING_CHIPS,
        min_bet: int = DEFAULT_MIN_BET,
        max_bet: int = DEFAULT_MAX_BET,
        deck: DeckManager | None = None,
    ) -> None:
        self.deck = deck if deck is not None else blackjack_deck()
        self._state = BlackjackState(balance=initial_balance, min_bet=min_bet, max_bet=max_bet)
        self._listeners: list[Listener] = []

    # ── State access ──────────────────────────────────────────────────────────

    @property
    def state(self) -> BlackjackState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def balance(self) -> int:
        return self._state.balance

    @property
    def committed_balance(self) -> int:
        """Balance plus the stake still on the table."""
        return self._state.balance + self._state.pot

    @property
    def min_bet(self) -> int:
        return self._state.min_bet

    @property
    def max_bet(self) -> int:
        return self._state.max_bet

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an effect listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, event: Event) -> tuple[Effect, ...]:
        """Apply ``event``; on success store the new state and notify listeners."""
        new_state, effects = transition(self._state, event, self.deck)
        self._state = new_state
        for effect in effects:
            for listener in list(self._listeners):
                listener(effect)
        return effects

    # ── Actions ───────────────────────────────────────────────────────────────

    def place_bet(self, amount: int) -> None:
        self.dispatch(PlaceBet(amount))

    def deal(self) -> None:
        self.dispatch(Deal())

    def hit(self) -> None:
        self.dispatch(Hit())

    def stand(self) -> None:
        self.dispatch(Stand())

    def double_down(self) -> None:
        self.dispatch(DoubleDown())

    def split(self) -> None:
        self.dispatch(Split())

    def next_hand(self) -> None:
        self.dispatch(NextHand())

    def play_dealer_turn(self) -> None:
        self.dispatch(PlayDealerTurn())

    def settle_round(self) -> list[HandOutcome]:
        """Settle every player hand and return the per-hand outcomes.

        The outcomes are only reported here; capture them before calling
        ``start_new_round()``.
        """
        effects = self.dispatch(Settle())
        for effect in effects:
            if isinstance(effect, RoundSettled):
                return list(effect.outcomes)
        return []

    def start_new_round(self) -> None:
        self.dispatch(StartNewRound())

    def update_bet_limits(self, min_bet: int, max_bet: int) -> None:
        self.dispatch(UpdateBetLimits(min_bet, max_bet))

    def set_balance(self, amount: int) -> bool:
        """Override the chip count. Only allowed in the betting phase.

        Returns:
            True if the balance was changed, False if the table is mid-round
            or ``amount`` is negative.
        """
        if self._state.phase is not Phase.BETTING or amount < 0:
            logger.debug("Balance override to %d refused in %s", amount, self._state.phase.value)
            return False
        self.dispatch(SetBalance(amount))
        return True

    # ── Queries ───────────────────────────────────────────────────────────────

    def available_actions(self) -> list[PlayerAction]:
        """Actions the active hand may take right now."""
        if self._state.phase is not Phase.PLAYER_TURN:
            return []
        hand = self._state.active_hand
        actions = [PlayerAction.HIT, PlayerAction.STAND]
        affordable = hand.bet <= self._state.balance
        if can_double_down(hand.cards) and affordable:
            actions.append(PlayerAction.DOUBLE_DOWN)
        if can_split(hand.cards) and affordable:
            actions.append(PlayerAction.SPLIT)
        return actions

    def action_availability(self) -> dict[PlayerAction, ActionAvailability]:
        """Availability of double down and split, with a reason when disabled."""
        if self._state.phase is not Phase.PLAYER_TURN:
            off = ActionAvailability(False, 'Not your turn')
            return {PlayerAction.DOUBLE_DOWN: off, PlayerAction.SPLIT: off}

        hand = self._state.active_hand
        short = f'Not enough chips (need ${hand.bet} more)'
        affordable = hand.bet <= self._state.balance

        if len(hand.cards) != 2:
            double = ActionAvailability(False, 'Only available on first two cards')
        elif calculate_hand_value(hand.cards).value not in DOUBLE_DOWN_TOTALS:
            double = ActionAvailability(False, 'Only available on hands totaling 9-11')
        elif not affordable:
            double = ActionAvailability(False, short)
        else:
            double = ActionAvailability(True)

        if len(hand.cards) != 2:
            split = ActionAvailability(False, 'Only available on first two cards')
        elif not can_split(hand.cards):
            split = ActionAvailability(False, 'Only available on matching pairs')
        elif not affordable:
            split = ActionAvailability(False, short)
        else:
            split = ActionAvailability(True)

        return {PlayerAction.DOUBLE_DOWN: double, PlayerAction.SPLIT: split}
