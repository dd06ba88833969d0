"""
Shoe creation, shuffling and card dealing.

A DeckManager owns one shoe of ``deck_count`` standard decks. Cards are dealt
from the top (the end of the internal list) and the shoe only ever shrinks
until a full reset replaces it wholesale.

Reshuffling is a between-rounds operation: callers invoke
``reshuffle_if_needed()`` at round boundaries, never mid-hand. ``deal()`` does
not auto-reshuffle; an empty shoe is a broken invariant that is healed by a
forced reset and logged.

Randomness comes from an injectable ``numpy.random.Generator`` so that two
managers built with identically seeded generators deal identical sequences.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from arcturus_casino.cards import CARDS_PER_DECK, RANKS, SUITS, Card

logger = logging.getLogger(__name__)

# ─── Shoe constants ───────────────────────────────────────────────────────────

BLACKJACK_DECK_COUNT: int = 1
BLACKJACK_RESHUFFLE_THRESHOLD: int = 15   # reshuffle when fewer than 15 of 52 remain

BACCARAT_DECK_COUNT: int = 8              # 416-card shoe
BACCARAT_RESHUFFLE_THRESHOLD: int = 20


@dataclass(frozen=True)
class DeckState:
    """Read-only snapshot of a shoe (for serialisation and tests)."""
    cards: tuple[Card, ...]
    deck_count: int
    reshuffle_threshold: int
    dealt_count: int


# ─── Pure helpers ─────────────────────────────────────────────────────────────

def create_shoe(deck_count: int = 1) -> tuple[Card, ...]:
    """Create an unshuffled shoe of ``deck_count`` standard decks.

    Examples:
        >>> len(create_shoe(8))
        416
    """
    return tuple(
        Card(rank, suit)
        for _ in range(deck_count)
        for suit in SUITS
        for rank in RANKS
    )


def shuffle_cards(cards: tuple[Card, ...], rng: np.random.Generator) -> tuple[Card, ...]:
    """Return a Fisher–Yates shuffled copy of ``cards``."""
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return tuple(shuffled)


def deal_from(cards: tuple[Card, ...]) -> tuple[Card, tuple[Card, ...]]:
    """Take the top card without mutating the input.

    Returns:
        (dealt card, remaining cards)

    Raises:
        ValueError: If ``cards`` is empty.
    """
    if not cards:
        raise ValueError("Cannot deal from an empty deck.")
    return cards[-1], cards[:-1]


# ─── DeckManager ──────────────────────────────────────────────────────────────

class DeckManager:
    """Owns a shuffled multi-deck shoe and decides when it must be replaced.

    Args:
        deck_count: Number of 52-card decks in the shoe.
        reshuffle_threshold: ``needs_reshuffle()`` is True once fewer than
            this many cards remain.
        rng: Generator used for every shuffle. Defaults to a fresh
            ``np.random.default_rng()``.
    """

    def __init__(
        self,
        deck_count: int = BLACKJACK_DECK_COUNT,
        reshuffle_threshold: int = BLACKJACK_RESHUFFLE_THRESHOLD,
        rng: np.random.Generator | None = None,
    ) -> None:
        if deck_count < 1:
            raise ValueError(f"deck_count must be >= 1, got {deck_count}")
        if reshuffle_threshold < 0:
            raise ValueError(f"reshuffle_threshold must be >= 0, got {reshuffle_threshold}")
        self.deck_count = deck_count
        self.reshuffle_threshold = reshuffle_threshold
        self._rng = rng if rng is not None else np.random.default_rng()
        self._cards: list[Card] = []
        self._dealt: list[Card] = []
        self.generation = 0
        self.reset()

    @property
    def total_cards(self) -> int:
        """Cards in a full shoe (52 × deck_count)."""
        return CARDS_PER_DECK * self.deck_count

    def reset(self) -> None:
        """Replace the shoe with a full, freshly shuffled one."""
        self._cards = list(create_shoe(self.deck_count))
        self.shuffle()
        self._dealt = []
        self.generation += 1

    def shuffle(self) -> None:
        """Shuffle the cards still in the shoe."""
        self._cards = list(shuffle_cards(tuple(self._cards), self._rng))

    def deal(self) -> Card:
        """Remove and return the top card of the shoe."""
        if not self._cards:
            # Only reachable when reshuffle_if_needed() was skipped between rounds.
            logger.warning(
                "Shoe exhausted mid-deal (generation %d); forcing a reset", self.generation
            )
            self.reset()
        card = self._cards.pop()
        self._dealt.append(card)
        return card

    def needs_reshuffle(self) -> bool:
        return len(self._cards) < self.reshuffle_threshold

    def reshuffle_if_needed(self) -> bool:
        """Reset the shoe if it has run below the threshold.

        Must only be called between rounds.

        Returns:
            True if a reshuffle happened.
        """
        if self.needs_reshuffle():
            logger.info(
                "Reshuffling %d-deck shoe (%d cards left, threshold %d)",
                self.deck_count, len(self._cards), self.reshuffle_threshold,
            )
            self.reset()
            return True
        return False

    def remaining_cards(self) -> int:
        return len(self._cards)

    def dealt_card_count(self) -> int:
        return len(self._dealt)

    def state(self) -> DeckState:
        return DeckState(
            cards=tuple(self._cards),
            deck_count=self.deck_count,
            reshuffle_threshold=self.reshuffle_threshold,
            dealt_count=len(self._dealt),
        )


# ─── Factories ────────────────────────────────────────────────────────────────

def blackjack_deck(rng: np.random.Generator | None = None) -> DeckManager:
    """Single 52-card deck, reshuffled below 15 cards."""
    return DeckManager(BLACKJACK_DECK_COUNT, BLACKJACK_RESHUFFLE_THRESHOLD, rng)


def baccarat_shoe(
    rng: np.random.Generator | None = None,
    reshuffle_fraction: float | None = None,
) -> DeckManager:
    """Eight-deck Punto Banco shoe.

    Args:
        rng: Shuffle generator.
        reshuffle_fraction: Optional cut-card position as a fraction of the
            full shoe (e.g. 0.25 → reshuffle below 104 of 416 cards). When
            omitted the fixed 20-card threshold is used.
    """
    threshold = BACCARAT_RESHUFFLE_THRESHOLD
    if reshuffle_fraction is not None:
        if not 0.0 <= reshuffle_fraction < 1.0:
            raise ValueError(f"reshuffle_fraction must be in [0, 1), got {reshuffle_fraction}")
        threshold = int(CARDS_PER_DECK * BACCARAT_DECK_COUNT * reshuffle_fraction)
    return DeckManager(BACCARAT_DECK_COUNT, threshold, rng)
