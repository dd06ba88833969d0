"""
Blackjack round state machine.

Round flow:
    BETTING → DEALING → PLAYER_TURN → DEALER_TURN → COMPLETE → BETTING

    - A natural blackjack on either side jumps DEALING → COMPLETE.
    - A bust on the last (or only) player hand jumps to COMPLETE.
    - After a split, ``active_hand_index`` walks the player hands in order.

The machine is a pure function over immutable state:

    transition(state, event, deck) -> (new_state, effects)

``state`` is never modified. The deck is the only collaborator and is used
purely as a card source (it is reshuffled only on StartNewRound, never between
a bet being placed and the round being settled). Illegal events raise a
GameRuleError subclass and leave the caller's state untouched.

Settlement credits are truncated to whole chips; StartNewRound discards any
unsettled hands, forfeiting their stakes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from arcturus_casino.cards import Card
from arcturus_casino.deck import DeckManager
from arcturus_casino.errors import (
    IllegalTransition,
    InsufficientBalance,
    InvalidBalance,
    InvalidBet,
    InvalidDoubleDown,
    InvalidSplit,
)
from arcturus_casino.blackjack.hand import (
    DOUBLE_DOWN_TOTALS,
    calculate_hand_value,
    is_blackjack,
    is_bust,
)
from arcturus_casino.blackjack.rules import RoundResult, settle_hand, should_dealer_hit

logger = logging.getLogger(__name__)

DEFAULT_MIN_BET: int = 10
DEFAULT_MAX_BET: int = 1000
DEFAULT_STARTING_CHIPS: int = 1000


# ─── Enumerations ─────────────────────────────────────────────────────────────

class Phase(Enum):
    BETTING = 'betting'
    DEALING = 'dealing'
    PLAYER_TURN = 'player-turn'
    DEALER_TURN = 'dealer-turn'
    COMPLETE = 'complete'


class PlayerAction(Enum):
    HIT = 'hit'
    STAND = 'stand'
    DOUBLE_DOWN = 'double-down'
    SPLIT = 'split'


# ─── State types ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Hand:
    """Cards plus the stake riding on them. Dealer hands carry no bet."""
    cards: tuple[Card, ...] = ()
    bet: int = 0
    is_dealer: bool = False

    def with_card(self, card: Card) -> Hand:
        return replace(self, cards=self.cards + (card,))


def _dealer_hand() -> Hand:
    return Hand(is_dealer=True)


@dataclass(frozen=True)
class BlackjackState:
    """Immutable snapshot of the table. Safe to keep, compare and share."""
    phase: Phase = Phase.BETTING
    player_hands: tuple[Hand, ...] = ()
    active_hand_index: int = 0
    dealer_hand: Hand = field(default_factory=_dealer_hand)
    balance: int = DEFAULT_STARTING_CHIPS
    pot: int = 0
    min_bet: int = DEFAULT_MIN_BET
    max_bet: int = DEFAULT_MAX_BET

    @property
    def active_hand(self) -> Hand | None:
        if self.active_hand_index < len(self.player_hands):
            return self.player_hands[self.active_hand_index]
        return None


@dataclass(frozen=True)
class HandOutcome:
    """Settlement of one player hand.

    ``payout`` is the total credited back (stake + profit, 0 on a loss);
    ``bet`` is the stake the hand carried at settlement.
    """
    hand_index: int
    result: RoundResult
    payout: int
    bet: int

    @property
    def profit(self) -> int:
        return self.payout - self.bet


# ─── Events ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlaceBet:
    amount: int


@dataclass(frozen=True)
class Deal:
    pass


@dataclass(frozen=True)
class Hit:
    pass


@dataclass(frozen=True)
class Stand:
    pass


@dataclass(frozen=True)
class DoubleDown:
    pass


@dataclass(frozen=True)
class Split:
    pass


@dataclass(frozen=True)
class NextHand:
    pass


@dataclass(frozen=True)
class PlayDealerTurn:
    pass


@dataclass(frozen=True)
class Settle:
    pass


@dataclass(frozen=True)
class StartNewRound:
    pass


@dataclass(frozen=True)
class SetBalance:
    amount: int


@dataclass(frozen=True)
class UpdateBetLimits:
    min_bet: int
    max_bet: int


Event = Union[
    PlaceBet, Deal, Hit, Stand, DoubleDown, Split, NextHand,
    PlayDealerTurn, Settle, StartNewRound, SetBalance, UpdateBetLimits,
]


# ─── Effects ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BetPlaced:
    hand_index: int
    amount: int


@dataclass(frozen=True)
class CardDealt:
    card: Card
    target: str          # 'player' | 'dealer'
    hand_index: int      # player hand index; 0 for the dealer


@dataclass(frozen=True)
class BalanceChanged:
    balance: int


@dataclass(frozen=True)
class PhaseChanged:
    phase: Phase


@dataclass(frozen=True)
class NaturalBlackjack:
    player: bool
    dealer: bool


@dataclass(frozen=True)
class HandBusted:
    hand_index: int


@dataclass(frozen=True)
class RoundSettled:
    outcomes: tuple[HandOutcome, ...]


@dataclass(frozen=True)
class ShoeReshuffled:
    pass


Effect = Union[
    BetPlaced, CardDealt, BalanceChanged, PhaseChanged, NaturalBlackjack,
    HandBusted, RoundSettled, ShoeReshuffled,
]

Transition = tuple[BlackjackState, tuple[Effect, ...]]


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _require_phase(state: BlackjackState, phase: Phase, action: str) -> None:
    if state.phase is not phase:
        raise IllegalTransition(
            f"Can only {action} during {phase.value} phase (current: {state.phase.value})"
        )


def _replace_active(state: BlackjackState, hand: Hand) -> tuple[Hand, ...]:
    hands = list(state.player_hands)
    hands[state.active_hand_index] = hand
    return tuple(hands)


def _advance(state: BlackjackState, busted: bool) -> BlackjackState:
    """Move to the next split hand, or end the player turn.

    A bust on the last hand goes straight to COMPLETE; a finished last hand
    hands over to the dealer.
    """
    if state.active_hand_index < len(state.player_hands) - 1:
        return replace(state, active_hand_index=state.active_hand_index + 1)
    return replace(state, phase=Phase.COMPLETE if busted else Phase.DEALER_TURN)


def _phase_effects(before: BlackjackState, after: BlackjackState) -> list[Effect]:
    return [PhaseChanged(after.phase)] if before.phase is not after.phase else []


# ─── Handlers ─────────────────────────────────────────────────────────────────

def _place_bet(state: BlackjackState, event: PlaceBet, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.BETTING, "place bet")
    amount = event.amount
    if amount < state.min_bet or amount > state.max_bet:
        raise InvalidBet(f"Bet must be between {state.min_bet} and {state.max_bet}")
    if amount > state.balance:
        raise InsufficientBalance("Insufficient balance")

    effects: list[Effect] = []
    # Settle returns straight to betting, so the shoe is checked here too
    if deck.reshuffle_if_needed():
        effects.append(ShoeReshuffled())

    new_state = replace(
        state,
        phase=Phase.DEALING,
        balance=state.balance - amount,
        pot=amount,
        player_hands=(Hand(bet=amount),),
        active_hand_index=0,
        dealer_hand=_dealer_hand(),
    )
    effects += [
        BetPlaced(0, amount),
        BalanceChanged(new_state.balance),
        PhaseChanged(Phase.DEALING),
    ]
    return new_state, tuple(effects)


def _deal(state: BlackjackState, event: Deal, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.DEALING, "deal")
    effects: list[Effect] = []

    player = state.player_hands[0]
    for _ in range(2):
        card = deck.deal()
        player = player.with_card(card)
        effects.append(CardDealt(card, 'player', 0))

    dealer = state.dealer_hand
    for _ in range(2):
        card = deck.deal()
        dealer = dealer.with_card(card)
        effects.append(CardDealt(card, 'dealer', 0))

    player_natural = is_blackjack(player.cards)
    dealer_natural = is_blackjack(dealer.cards)
    if player_natural or dealer_natural:
        # No player decisions when either side holds a natural
        effects.append(NaturalBlackjack(player_natural, dealer_natural))
        phase = Phase.COMPLETE
    else:
        phase = Phase.PLAYER_TURN

    new_state = replace(state, player_hands=(player,), dealer_hand=dealer, phase=phase)
    effects.append(PhaseChanged(phase))
    return new_state, tuple(effects)


def _hit(state: BlackjackState, event: Hit, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.PLAYER_TURN, "hit")
    index = state.active_hand_index
    card = deck.deal()
    hand = state.active_hand.with_card(card)
    new_state = replace(state, player_hands=_replace_active(state, hand))
    effects: list[Effect] = [CardDealt(card, 'player', index)]

    if is_bust(hand.cards):
        effects.append(HandBusted(index))
        new_state = _advance(new_state, busted=True)
    effects.extend(_phase_effects(state, new_state))
    return new_state, tuple(effects)


def _stand(state: BlackjackState, event: Stand, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.PLAYER_TURN, "stand")
    new_state = _advance(state, busted=False)
    return new_state, tuple(_phase_effects(state, new_state))


def _next_hand(state: BlackjackState, event: NextHand, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.PLAYER_TURN, "move to next hand")
    new_state = _advance(state, busted=False)
    return new_state, tuple(_phase_effects(state, new_state))


def _double_down(state: BlackjackState, event: DoubleDown, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.PLAYER_TURN, "double down")
    index = state.active_hand_index
    hand = state.active_hand

    if len(hand.cards) != 2:
        raise InvalidDoubleDown("Can only double down on initial 2-card hand")
    if calculate_hand_value(hand.cards).value not in DOUBLE_DOWN_TOTALS:
        raise InvalidDoubleDown("Can only double down on hand totaling 9, 10, or 11")
    if hand.bet > state.balance:
        raise InsufficientBalance("Insufficient balance to double down")

    card = deck.deal()
    doubled = replace(hand, bet=hand.bet * 2).with_card(card)
    new_state = replace(
        state,
        balance=state.balance - hand.bet,
        pot=state.pot + hand.bet,
        player_hands=_replace_active(state, doubled),
    )
    effects: list[Effect] = [
        BalanceChanged(new_state.balance),
        CardDealt(card, 'player', index),
    ]

    # Exactly one card, then a forced stand
    busted = is_bust(doubled.cards)
    if busted:
        effects.append(HandBusted(index))
    new_state = _advance(new_state, busted=busted)
    effects.extend(_phase_effects(state, new_state))
    return new_state, tuple(effects)


def _split(state: BlackjackState, event: Split, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.PLAYER_TURN, "split")
    index = state.active_hand_index
    hand = state.active_hand

    if len(hand.cards) != 2:
        raise InvalidSplit("Can only split initial 2-card hand")
    if hand.cards[0].rank != hand.cards[1].rank:
        raise InvalidSplit("Can only split pairs of same rank")
    if hand.bet > state.balance:
        raise InsufficientBalance("Insufficient balance to split")

    first_card = deck.deal()
    second_card = deck.deal()
    first = Hand(cards=(hand.cards[0], first_card), bet=hand.bet)
    second = Hand(cards=(hand.cards[1], second_card), bet=hand.bet)
    new_index = len(state.player_hands)

    hands = list(state.player_hands)
    hands[index] = first
    hands.append(second)

    # Play continues on the original hand; active_hand_index is unchanged
    new_state = replace(
        state,
        balance=state.balance - hand.bet,
        pot=state.pot + hand.bet,
        player_hands=tuple(hands),
    )
    return new_state, (
        BetPlaced(new_index, hand.bet),
        BalanceChanged(new_state.balance),
        CardDealt(first_card, 'player', index),
        CardDealt(second_card, 'player', new_index),
    )


def _play_dealer_turn(state: BlackjackState, event: PlayDealerTurn, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.DEALER_TURN, "play dealer turn")
    dealer = state.dealer_hand
    effects: list[Effect] = []
    while should_dealer_hit(dealer.cards):
        card = deck.deal()
        dealer = dealer.with_card(card)
        effects.append(CardDealt(card, 'dealer', 0))

    effects.append(PhaseChanged(Phase.COMPLETE))
    return replace(state, dealer_hand=dealer, phase=Phase.COMPLETE), tuple(effects)


def _settle(state: BlackjackState, event: Settle, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.COMPLETE, "settle")
    outcomes = []
    balance = state.balance
    for i, hand in enumerate(state.player_hands):
        result, payout = settle_hand(hand.cards, state.dealer_hand.cards, hand.bet)
        balance = int(balance + payout)
        outcomes.append(HandOutcome(hand_index=i, result=result, payout=payout, bet=hand.bet))

    new_state = replace(state, phase=Phase.BETTING, pot=0, balance=balance)
    return new_state, (
        RoundSettled(tuple(outcomes)),
        BalanceChanged(balance),
        PhaseChanged(Phase.BETTING),
    )


def _start_new_round(state: BlackjackState, event: StartNewRound, deck: DeckManager) -> Transition:
    effects: list[Effect] = []
    if state.pot:
        logger.warning(
            "Starting a new round from %s with %d chips unsettled; stake forfeited",
            state.phase.value, state.pot,
        )
    if deck.reshuffle_if_needed():
        effects.append(ShoeReshuffled())

    new_state = replace(
        state,
        phase=Phase.BETTING,
        player_hands=(),
        dealer_hand=_dealer_hand(),
        pot=0,
        active_hand_index=0,
    )
    effects.extend(_phase_effects(state, new_state))
    return new_state, tuple(effects)


def _set_balance(state: BlackjackState, event: SetBalance, deck: DeckManager) -> Transition:
    _require_phase(state, Phase.BETTING, "set balance")
    if event.amount < 0:
        raise InvalidBalance(f"Balance cannot be negative: {event.amount}")
    return replace(state, balance=event.amount), (BalanceChanged(event.amount),)


def _update_bet_limits(state: BlackjackState, event: UpdateBetLimits, deck: DeckManager) -> Transition:
    if 0 < event.min_bet <= event.max_bet:
        return replace(state, min_bet=event.min_bet, max_bet=event.max_bet), ()
    logger.debug("Ignoring invalid bet limits %d..%d", event.min_bet, event.max_bet)
    return state, ()


_HANDLERS: dict[type, Callable[[BlackjackState, Event, DeckManager], Transition]] = {
    PlaceBet: _place_bet,
    Deal: _deal,
    Hit: _hit,
    Stand: _stand,
    DoubleDown: _double_down,
    Split: _split,
    NextHand: _next_hand,
    PlayDealerTurn: _play_dealer_turn,
    Settle: _settle,
    StartNewRound: _start_new_round,
    SetBalance: _set_balance,
    UpdateBetLimits: _update_bet_limits,
}


# ─── Core transition function ─────────────────────────────────────────────────

def transition(state: BlackjackState, event: Event, deck: DeckManager) -> Transition:
    """Apply one event to a table state.

    Args:
        state: Current (immutable) table state.
        event: The action to apply.
        deck: Card source for any cards the event deals.

    Returns:
        (new_state, effects) — effects are ordered as they happened.

    Raises:
        GameRuleError: If the event is illegal for ``state``.
        TypeError: If ``event`` is not a blackjack event.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Not a blackjack event: {event!r}")
    return handler(state, event, deck)
