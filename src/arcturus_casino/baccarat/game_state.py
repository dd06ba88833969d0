"""
Punto Banco round state machine.

Round flow:
    BETTING → DEALING → [PLAYER_THIRD] → [BANKER_THIRD] → RESOLUTION → BETTING

A Deal event plays the whole coup in one transition: the intermediate phases
are reported as PhaseEntered effects in the order the table passes through
them, and the resulting state is always RESOLUTION. NewRound returns the
table to BETTING and clears the bets.

    transition(state, event, deck) -> (new_state, effects)

``state`` is never modified; illegal events raise a GameRuleError subclass.

Chip flow for one coup:
    balance -= total stake                 (on Deal)
    balance += total stake + net payout    (on resolution)

so a losing bet returns nothing, a push returns its stake and a winning bet
returns stake + truncated profit.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from arcturus_casino.cards import Card
from arcturus_casino.deck import DeckManager
from arcturus_casino.errors import (
    IllegalTransition,
    InsufficientBalance,
    InvalidBalance,
    InvalidBet,
    NoBetsPlaced,
)
from arcturus_casino.baccarat.hand import (
    Winner,
    determine_winner,
    hand_value,
    has_natural,
    is_natural,
    is_pair,
)
from arcturus_casino.baccarat.payout import Bet, BetResult, BetType, calculate_all_payouts
from arcturus_casino.baccarat.rules import should_banker_draw, should_player_draw

logger = logging.getLogger(__name__)

DEFAULT_MIN_BET: int = 10
DEFAULT_MAX_BET: int = 5000
DEFAULT_STARTING_CHIPS: int = 1000
MAX_HISTORY_LENGTH: int = 20


class Phase(Enum):
    BETTING = 'betting'
    DEALING = 'dealing'
    PLAYER_THIRD = 'playerThird'
    BANKER_THIRD = 'bankerThird'
    RESOLUTION = 'resolution'


# ─── State types ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RoundOutcome:
    """Everything about one finished coup, as kept in the round history."""
    winner: Winner
    player_hand: tuple[Card, ...]
    banker_hand: tuple[Card, ...]
    player_value: int
    banker_value: int
    player_pair: bool
    banker_pair: bool
    is_natural: bool
    bet_results: tuple[BetResult, ...]
    timestamp: float

    @property
    def total_bet(self) -> int:
        return sum(r.bet.amount for r in self.bet_results)

    @property
    def net_payout(self) -> int:
        """Net chip change for the coup (negative when the table won)."""
        return sum(r.payout for r in self.bet_results)


@dataclass(frozen=True)
class BaccaratState:
    phase: Phase = Phase.BETTING
    player_hand: tuple[Card, ...] = ()
    banker_hand: tuple[Card, ...] = ()
    active_bets: tuple[Bet, ...] = ()
    balance: int = DEFAULT_STARTING_CHIPS
    history: tuple[RoundOutcome, ...] = ()    # newest first
    min_bet: int = DEFAULT_MIN_BET
    max_bet: int = DEFAULT_MAX_BET

    @property
    def bet_total(self) -> int:
        return sum(b.amount for b in self.active_bets)

    def bet_on(self, bet_type: BetType) -> Bet | None:
        for bet in self.active_bets:
            if bet.type is bet_type:
                return bet
        return None


# ─── Events ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlaceBet:
    type: BetType
    amount: int


@dataclass(frozen=True)
class RemoveBet:
    type: BetType


@dataclass(frozen=True)
class ClearBets:
    pass


@dataclass(frozen=True)
class Deal:
    timestamp: float | None = None    # defaults to time.time() when dealt


@dataclass(frozen=True)
class NewRound:
    pass


@dataclass(frozen=True)
class SetBalance:
    amount: int


@dataclass(frozen=True)
class UpdateSettings:
    min_bet: int | None = None
    max_bet: int | None = None


Event = Union[PlaceBet, RemoveBet, ClearBets, Deal, NewRound, SetBalance, UpdateSettings]


# ─── Effects ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BetPlaced:
    bet: Bet      # the bet as it now stands, stacked amount included


@dataclass(frozen=True)
class BetRemoved:
    type: BetType


@dataclass(frozen=True)
class PhaseEntered:
    phase: Phase


@dataclass(frozen=True)
class DealStarted:
    pass


@dataclass(frozen=True)
class CardDealt:
    card: Card
    target: str      # 'player' | 'banker'
    position: int    # 0-based slot in that hand


@dataclass(frozen=True)
class NaturalDealt:
    side: str
    value: int


@dataclass(frozen=True)
class ThirdCardDrawn:
    side: str
    card: Card


@dataclass(frozen=True)
class BalanceChanged:
    balance: int


@dataclass(frozen=True)
class RoundComplete:
    outcome: RoundOutcome


@dataclass(frozen=True)
class ShoeReshuffled:
    pass


Effect = Union[
    BetPlaced, BetRemoved, PhaseEntered, DealStarted, CardDealt, NaturalDealt,
    ThirdCardDrawn, BalanceChanged, RoundComplete, ShoeReshuffled,
]

Transition = tuple[BaccaratState, tuple[Effect, ...]]


# ─── Betting ──────────────────────────────────────────────────────────────────

def _place_bet(state: BaccaratState, event: PlaceBet, deck: DeckManager) -> Transition:
    if state.phase is not Phase.BETTING:
        raise IllegalTransition("Can only place bets during betting phase")
    if event.amount < state.min_bet:
        raise InvalidBet(f"Minimum bet is {state.min_bet}")
    if event.amount > state.max_bet:
        raise InvalidBet(f"Maximum bet is {state.max_bet}")

    committed = state.bet_total
    if committed + event.amount > state.balance:
        raise InsufficientBalance(
            f"Insufficient balance. Available: {state.balance - committed}"
        )

    existing = state.bet_on(event.type)
    if existing is None:
        placed = Bet(event.type, event.amount)
        bets = state.active_bets + (placed,)
    else:
        # Repeated chips on the same spot stack, capped at the table maximum
        if existing.amount + event.amount > state.max_bet:
            raise InvalidBet(f"Maximum bet is {state.max_bet}")
        placed = Bet(event.type, existing.amount + event.amount)
        bets = tuple(placed if b.type is event.type else b for b in state.active_bets)

    return replace(state, active_bets=bets), (BetPlaced(placed),)


def _remove_bet(state: BaccaratState, event: RemoveBet, deck: DeckManager) -> Transition:
    if state.phase is not Phase.BETTING:
        raise IllegalTransition("Can only remove bets during betting phase")
    if state.bet_on(event.type) is None:
        return state, ()
    bets = tuple(b for b in state.active_bets if b.type is not event.type)
    return replace(state, active_bets=bets), (BetRemoved(event.type),)


def _clear_bets(state: BaccaratState, event: ClearBets, deck: DeckManager) -> Transition:
    if state.phase is not Phase.BETTING:
        raise IllegalTransition("Can only clear bets during betting phase")
    effects = tuple(BetRemoved(b.type) for b in state.active_bets)
    return replace(state, active_bets=()), effects


# ─── Dealing ──────────────────────────────────────────────────────────────────

def _resolve(
    state: BaccaratState,
    player: tuple[Card, ...],
    banker: tuple[Card, ...],
    timestamp: float,
) -> tuple[BaccaratState, RoundOutcome]:
    player_value = hand_value(player)
    banker_value = hand_value(banker)
    winner = determine_winner(player_value, banker_value)
    player_pair = is_pair(player)
    banker_pair = is_pair(banker)

    results = calculate_all_payouts(
        state.active_bets, winner, player_pair=player_pair, banker_pair=banker_pair
    )
    outcome = RoundOutcome(
        winner=winner,
        player_hand=player,
        banker_hand=banker,
        player_value=player_value,
        banker_value=banker_value,
        player_pair=player_pair,
        banker_pair=banker_pair,
        is_natural=has_natural(player, banker),
        bet_results=tuple(results),
        timestamp=timestamp,
    )

    new_state = replace(
        state,
        phase=Phase.RESOLUTION,
        player_hand=player,
        banker_hand=banker,
        balance=state.balance + outcome.total_bet + outcome.net_payout,
        history=((outcome,) + state.history)[:MAX_HISTORY_LENGTH],
    )
    return new_state, outcome


def _deal(state: BaccaratState, event: Deal, deck: DeckManager) -> Transition:
    if state.phase is not Phase.BETTING:
        raise IllegalTransition("Can only deal during betting phase")
    if not state.active_bets:
        raise NoBetsPlaced("Place at least one bet to deal")
    if state.bet_total > state.balance:
        raise InsufficientBalance(
            f"Insufficient balance. Bets total {state.bet_total}, balance {state.balance}"
        )

    effects: list[Effect] = []
    if deck.reshuffle_if_needed():
        effects.append(ShoeReshuffled())

    state = replace(state, balance=state.balance - state.bet_total)
    effects += [BalanceChanged(state.balance), PhaseEntered(Phase.DEALING), DealStarted()]

    # Player, Banker, Player, Banker
    player: tuple[Card, ...] = ()
    banker: tuple[Card, ...] = ()
    for position in range(2):
        card = deck.deal()
        player += (card,)
        effects.append(CardDealt(card, 'player', position))
        card = deck.deal()
        banker += (card,)
        effects.append(CardDealt(card, 'banker', position))

    if has_natural(player, banker):
        if is_natural(player):
            effects.append(NaturalDealt('player', hand_value(player)))
        if is_natural(banker):
            effects.append(NaturalDealt('banker', hand_value(banker)))
    else:
        player_third: Card | None = None
        player_stood = not should_player_draw(hand_value(player))
        if not player_stood:
            effects.append(PhaseEntered(Phase.PLAYER_THIRD))
            player_third = deck.deal()
            player += (player_third,)
            effects += [CardDealt(player_third, 'player', 2), ThirdCardDrawn('player', player_third)]

        if should_banker_draw(hand_value(banker), player_third, player_stood):
            effects.append(PhaseEntered(Phase.BANKER_THIRD))
            card = deck.deal()
            banker += (card,)
            effects += [CardDealt(card, 'banker', 2), ThirdCardDrawn('banker', card)]

    timestamp = event.timestamp if event.timestamp is not None else time.time()
    new_state, outcome = _resolve(state, player, banker, timestamp)
    effects += [
        PhaseEntered(Phase.RESOLUTION),
        BalanceChanged(new_state.balance),
        RoundComplete(outcome),
    ]
    logger.debug(
        "Coup resolved: %s (%d vs %d), net %+d",
        outcome.winner.value, outcome.player_value, outcome.banker_value, outcome.net_payout,
    )
    return new_state, tuple(effects)


# ─── Table management ─────────────────────────────────────────────────────────

def _new_round(state: BaccaratState, event: NewRound, deck: DeckManager) -> Transition:
    new_state = replace(
        state, phase=Phase.BETTING, player_hand=(), banker_hand=(), active_bets=()
    )
    effects = () if state.phase is Phase.BETTING else (PhaseEntered(Phase.BETTING),)
    return new_state, effects


def _set_balance(state: BaccaratState, event: SetBalance, deck: DeckManager) -> Transition:
    # Resolution is allowed: every stake has been credited back by then
    if state.phase not in (Phase.BETTING, Phase.RESOLUTION):
        raise IllegalTransition(f"Cannot change balance during {state.phase.value} phase")
    if event.amount < 0:
        raise InvalidBalance(f"Balance cannot be negative: {event.amount}")
    effects: list[Effect] = []
    bets = state.active_bets
    if state.phase is Phase.BETTING and state.bet_total > event.amount:
        # Stakes are only deducted at the deal; drop any the new balance cannot cover
        effects += [BetRemoved(b.type) for b in bets]
        bets = ()
    effects.append(BalanceChanged(event.amount))
    return replace(state, balance=event.amount, active_bets=bets), tuple(effects)


def _update_settings(state: BaccaratState, event: UpdateSettings, deck: DeckManager) -> Transition:
    min_bet = state.min_bet if event.min_bet is None else event.min_bet
    max_bet = state.max_bet if event.max_bet is None else event.max_bet
    if not 0 < min_bet <= max_bet:
        logger.debug("Ignoring invalid bet limits %d..%d", min_bet, max_bet)
        return state, ()
    return replace(state, min_bet=min_bet, max_bet=max_bet), ()


_HANDLERS: dict[type, Callable[[BaccaratState, Event, DeckManager], Transition]] = {
    PlaceBet: _place_bet,
    RemoveBet: _remove_bet,
    ClearBets: _clear_bets,
    Deal: _deal,
    NewRound: _new_round,
    SetBalance: _set_balance,
    UpdateSettings: _update_settings,
}


def transition(state: BaccaratState, event: Event, deck: DeckManager) -> Transition:
    """Apply one event to a baccarat table state.

    Raises:
        GameRuleError: If the event is illegal for ``state``.
        TypeError: If ``event`` is not a baccarat event.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Not a baccarat event: {event!r}")
    return handler(state, event, deck)
