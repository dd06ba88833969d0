"""
Card model, constants, and human-readable I/O helpers.

A card is an immutable (rank, suit) value:
    rank  ->  'A', '2' .. '10', 'J', 'Q', 'K'
    suit  ->  'hearts', 'diamonds', 'clubs', 'spades'

Point values are game-specific and live with each game's hand evaluator
(blackjack/hand.py, baccarat/hand.py). Short string forms such as 'AS',
'10H' or '7C' are used exclusively at I/O boundaries and in tests.
"""

from __future__ import annotations

from dataclasses import dataclass

RANKS: tuple[str, ...] = ('A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K')
SUITS: tuple[str, ...] = ('hearts', 'diamonds', 'clubs', 'spades')

CARDS_PER_DECK: int = len(RANKS) * len(SUITS)  # 52

# Short suit letters used by card_to_str / str_to_card
SUIT_LETTERS: dict[str, str] = {'hearts': 'H', 'diamonds': 'D', 'clubs': 'C', 'spades': 'S'}
_LETTER_TO_SUIT: dict[str, str] = {letter: suit for suit, letter in SUIT_LETTERS.items()}

SUIT_SYMBOLS: dict[str, str] = {'hearts': '♥', 'diamonds': '♦', 'clubs': '♣', 'spades': '♠'}


@dataclass(frozen=True)
class Card:
    """A single playing card. Immutable and hashable."""
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Unknown rank: {self.rank!r}")
        if self.suit not in SUITS:
            raise ValueError(f"Unknown suit: {self.suit!r}")

    def __str__(self) -> str:
        return card_to_str(self)

    @property
    def symbol(self) -> str:
        """Display form with a suit symbol, e.g. '10♥'."""
        return self.rank + SUIT_SYMBOLS[self.suit]


def card_to_str(card: Card) -> str:
    """Convert a card to its short string form.

    Examples:
        >>> card_to_str(Card('A', 'spades'))
        'AS'
        >>> card_to_str(Card('10', 'clubs'))
        '10C'
    """
    return card.rank + SUIT_LETTERS[card.suit]


def str_to_card(s: str) -> Card:
    """Parse a short card string into a Card.

    The format is <rank><suit> where suit is the last character
    ('C', 'D', 'H' or 'S') and rank is 'A', '2'-'10', 'J', 'Q' or 'K'.

    Examples:
        >>> str_to_card('AS')
        Card(rank='A', suit='spades')
        >>> str_to_card('10H')
        Card(rank='10', suit='hearts')

    Raises:
        ValueError: If the string is not a valid card.
    """
    if len(s) < 2:
        raise ValueError(f"Not a card: {s!r}")
    suit = _LETTER_TO_SUIT.get(s[-1].upper())
    if suit is None:
        raise ValueError(f"Unknown suit letter in {s!r}")
    return Card(s[:-1].upper(), suit)


def hand_to_str(cards: tuple[Card, ...]) -> str:
    """Convert a sequence of cards to a space-separated string.

    Examples:
        >>> hand_to_str((Card('A', 'clubs'), Card('K', 'hearts')))
        'AC KH'
    """
    return ' '.join(card_to_str(c) for c in cards)
