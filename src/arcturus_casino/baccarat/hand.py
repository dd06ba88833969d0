"""
Punto Banco hand evaluation.

Card values:
    A = 1, 2-9 = pip value, 10/J/Q/K = 0

A hand's value is the last digit of its card total (0-9). A *natural* is a
two-card 8 or 9; it ends the round before any third-card rule is consulted.
A *pair* is a hand whose first two cards share a rank (suit ignored).
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from arcturus_casino.cards import Card

NATURAL_THRESHOLD: int = 8

CARD_VALUES: dict[str, int] = {
    'A': 1, '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9,
    '10': 0, 'J': 0, 'Q': 0, 'K': 0,
}


class Winner(Enum):
    PLAYER = 'player'
    BANKER = 'banker'
    TIE = 'tie'


def card_value(card: Card) -> int:
    return CARD_VALUES[card.rank]


def hand_value(cards: Sequence[Card]) -> int:
    """Sum of card values mod 10. An empty hand is worth 0.

    Examples:
        >>> hand_value(hand('7S', '8H'))
        5
        >>> hand_value(hand('KS', '8H'))
        8
    """
    return sum(card_value(c) for c in cards) % 10


def is_natural(cards: Sequence[Card]) -> bool:
    return len(cards) == 2 and hand_value(cards) >= NATURAL_THRESHOLD


def is_pair(cards: Sequence[Card]) -> bool:
    return len(cards) >= 2 and cards[0].rank == cards[1].rank


def has_natural(player_cards: Sequence[Card], banker_cards: Sequence[Card]) -> bool:
    return is_natural(player_cards) or is_natural(banker_cards)


def determine_winner(player_value: int, banker_value: int) -> Winner:
    if player_value > banker_value:
        return Winner.PLAYER
    if banker_value > player_value:
        return Winner.BANKER
    return Winner.TIE


def describe_hand(cards: Sequence[Card]) -> str:
    """Human-readable hand, e.g. '9♥ K♠ = 9 (Natural!)'."""
    natural = ' (Natural!)' if is_natural(cards) else ''
    return f"{' '.join(c.symbol for c in cards)} = {hand_value(cards)}{natural}"
