"""
Shared pytest fixtures for the card table tests.

Provides a hand() builder around str_to_card and a StackedDeck card source
that deals a known sequence, so engine tests can script every round.
"""

from __future__ import annotations

import numpy as np
import pytest

from arcturus_casino.cards import Card, str_to_card


def hand(*card_strs: str) -> tuple[Card, ...]:
    """Build a hand tuple from human-readable card strings.

    Examples:
        >>> hand('AS', 'KH')
        (Card(rank='A', suit='spades'), Card(rank='K', suit='hearts'))
    """
    return tuple(str_to_card(s) for s in card_strs)


class StackedDeck:
    """Card source that deals ``card_strs`` in the order given.

    Mirrors the DeckManager methods the engines call. ``reshuffle`` sets what
    the next ``reshuffle_if_needed()`` reports.
    """

    def __init__(self, *card_strs: str, reshuffle: bool = False) -> None:
        self._cards = list(hand(*card_strs))
        self.dealt: list[Card] = []
        self.reshuffle = reshuffle
        self.reshuffle_calls = 0

    def deal(self) -> Card:
        if not self._cards:
            raise AssertionError("StackedDeck ran out of cards")
        card = self._cards.pop(0)
        self.dealt.append(card)
        return card

    def reshuffle_if_needed(self) -> bool:
        self.reshuffle_calls += 1
        return self.reshuffle

    def remaining_cards(self) -> int:
        return len(self._cards)

    def stack(self, *card_strs: str) -> None:
        """Append more cards to the bottom of the stack."""
        self._cards.extend(hand(*card_strs))


@pytest.fixture
def seeded_rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def h():
    """Expose the hand() helper as a fixture for convenience."""
    return hand
