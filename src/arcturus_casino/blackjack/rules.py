"""
Dealer drawing rule and per-hand settlement.

Dealer rule:
    Hit while the hand totals 16 or less (soft or hard alike), stand on 17+
    (a soft 17 stands) or once busted.

Settlement priority (first match wins), for a hand with stake ``bet``:
    1. Player and dealer both blackjack  → push, stake returned
    2. Player blackjack only             → 3:2, profit floored to whole chips
    3. Dealer blackjack or player bust   → loss, nothing returned
    4. Dealer bust                       → win 1:1
    5. Total comparison                  → higher wins 1:1, equal pushes

Payout convention: the *payout* is the number of chips credited back to the
player's balance (stake + profit). A loss credits 0.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from enum import Enum
from fractions import Fraction

from arcturus_casino.cards import Card
from arcturus_casino.blackjack.hand import (
    calculate_hand_value,
    compare_hands,
    is_blackjack,
    is_bust,
)

DEALER_HIT_THRESHOLD: int = 16
DEALER_STAND_THRESHOLD: int = 17

BLACKJACK_PAYOUT: Fraction = Fraction(3, 2)
WIN_PAYOUT: int = 1


class RoundResult(Enum):
    WIN = 'win'
    LOSS = 'loss'
    PUSH = 'push'
    BLACKJACK = 'blackjack'


# ─── Dealer strategy ──────────────────────────────────────────────────────────

def should_dealer_hit(dealer_cards: Sequence[Card]) -> bool:
    """Return True while the dealer must draw.

    Examples:
        >>> should_dealer_hit(hand('10S', '6H'))      # hard 16
        True
        >>> should_dealer_hit(hand('AS', '6H'))       # soft 17
        False
    """
    hv = calculate_hand_value(dealer_cards)
    if hv.is_bust:
        return False
    return hv.value <= DEALER_HIT_THRESHOLD


def should_dealer_stand(dealer_cards: Sequence[Card]) -> bool:
    hv = calculate_hand_value(dealer_cards)
    if hv.is_bust:
        return True
    return hv.value >= DEALER_STAND_THRESHOLD


# ─── Settlement ───────────────────────────────────────────────────────────────

def settle_hand(
    player_cards: Sequence[Card],
    dealer_cards: Sequence[Card],
    bet: int,
) -> tuple[RoundResult, int]:
    """Settle one player hand against the dealer's final hand.

    Args:
        player_cards: Player's final hand.
        dealer_cards: Dealer's final hand.
        bet: Stake on this hand (already doubled after a double down).

    Returns:
        (RoundResult, payout) where payout is the chips returned to the
        player, stake included.
    """
    player_blackjack = is_blackjack(player_cards)
    dealer_blackjack = is_blackjack(dealer_cards)

    if player_blackjack and dealer_blackjack:
        return RoundResult.PUSH, bet

    if player_blackjack:
        return RoundResult.BLACKJACK, bet + math.floor(bet * BLACKJACK_PAYOUT)

    if dealer_blackjack or is_bust(player_cards):
        return RoundResult.LOSS, 0

    if is_bust(dealer_cards):
        return RoundResult.WIN, bet + bet * WIN_PAYOUT

    comparison = compare_hands(player_cards, dealer_cards)
    if comparison > 0:
        return RoundResult.WIN, bet + bet * WIN_PAYOUT
    if comparison < 0:
        return RoundResult.LOSS, 0
    return RoundResult.PUSH, bet
