"""
Blackjack hand evaluation: totals, soft/hard aces, bust and eligibility checks.

Ace valuation:
    Every ace is first counted as 11. While the total exceeds 21 and an ace is
    still counted high, one ace at a time is downgraded to 1. A hand is *soft*
    when at least one ace is still counted as 11 after the downgrades.

All functions operate on tuples (or any sequence) of Card values.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from arcturus_casino.cards import Card

BLACKJACK_VALUE: int = 21
ACE_HIGH_VALUE: int = 11
ACE_LOW_VALUE: int = 1

# Non-ace point values; the ace is resolved by calculate_hand_value()
CARD_VALUES: dict[str, int] = {
    '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9,
    '10': 10, 'J': 10, 'Q': 10, 'K': 10,
    'A': ACE_HIGH_VALUE,
}

DOUBLE_DOWN_TOTALS: range = range(9, 12)  # 9, 10, 11


@dataclass(frozen=True)
class HandValue:
    value: int
    is_soft: bool
    is_bust: bool


def calculate_hand_value(cards: Sequence[Card]) -> HandValue:
    """Calculate the best total of a hand with soft/hard ace handling.

    Examples:
        >>> calculate_hand_value(hand('AS', '6H'))
        HandValue(value=17, is_soft=True, is_bust=False)
        >>> calculate_hand_value(hand('AS', '6H', '10D'))
        HandValue(value=17, is_soft=False, is_bust=False)
        >>> calculate_hand_value(hand('KS', 'QH', '5D'))
        HandValue(value=25, is_soft=False, is_bust=True)
    """
    total = 0
    high_aces = 0
    for card in cards:
        if card.rank == 'A':
            high_aces += 1
        total += CARD_VALUES[card.rank]

    while total > BLACKJACK_VALUE and high_aces > 0:
        total -= ACE_HIGH_VALUE - ACE_LOW_VALUE
        high_aces -= 1

    is_bust = total > BLACKJACK_VALUE
    return HandValue(value=total, is_soft=high_aces > 0 and not is_bust, is_bust=is_bust)


def is_blackjack(cards: Sequence[Card]) -> bool:
    """Return True for a natural: exactly two cards totalling 21."""
    if len(cards) != 2:
        return False
    return calculate_hand_value(cards).value == BLACKJACK_VALUE


def is_bust(cards: Sequence[Card]) -> bool:
    return calculate_hand_value(cards).is_bust


def can_split(cards: Sequence[Card]) -> bool:
    """Two cards of the same rank (suit ignored)."""
    return len(cards) == 2 and cards[0].rank == cards[1].rank


def can_double_down(cards: Sequence[Card]) -> bool:
    """Two cards totalling 9, 10 or 11."""
    if len(cards) != 2:
        return False
    return calculate_hand_value(cards).value in DOUBLE_DOWN_TOTALS


def compare_hands(player_cards: Sequence[Card], dealer_cards: Sequence[Card]) -> int:
    """Compare two hands from the first hand's perspective.

    Returns:
        1 if the first hand wins, -1 if it loses, 0 on a push.
        A busted first hand always loses, even against a busted dealer.
    """
    player = calculate_hand_value(player_cards)
    dealer = calculate_hand_value(dealer_cards)

    if player.is_bust:
        return -1
    if dealer.is_bust:
        return 1
    if player.value > dealer.value:
        return 1
    if player.value < dealer.value:
        return -1
    return 0


def hand_value_display(cards: Sequence[Card]) -> str:
    """Short label for UI display: 'Bust', 'Soft 18' or '17'."""
    hv = calculate_hand_value(cards)
    if hv.is_bust:
        return 'Bust'
    if hv.is_soft:
        return f'Soft {hv.value}'
    return str(hv.value)
