"""
Punto Banco third-card rules.

Player (two-card value, naturals already excluded):
    0-5 draw, 6-7 stand.

Banker, when the Player stood:
    0-5 draw, 6-7 stand.

Banker, when the Player drew (column = pip value of the Player's third card):

    Banker | draws when Player's third card is
    -------+----------------------------------
     0-2   | anything
     3     | anything but 8
     4     | 2-7
     5     | 4-7
     6     | 6-7
     7     | never (stands)

An 8 or 9 on either side is a natural and ends the round before these rules
apply; the functions below return "stand" for such values.
"""

from __future__ import annotations

from arcturus_casino.cards import Card
from arcturus_casino.baccarat.hand import card_value

PLAYER_DRAW_MAX: int = 5
BANKER_STAND_VALUE: int = 7

# banker value -> player third-card pips on which the banker draws
BANKER_DRAW_TABLE: dict[int, frozenset[int]] = {
    0: frozenset(range(10)),
    1: frozenset(range(10)),
    2: frozenset(range(10)),
    3: frozenset(range(10)) - {8},
    4: frozenset(range(2, 8)),
    5: frozenset(range(4, 8)),
    6: frozenset({6, 7}),
    7: frozenset(),
}

BANKER_RULES_DESCRIPTION: str = """\
Banker Third-Card Rules:
- 0-2: Always draw
- 3: Draw unless Player's third card was 8
- 4: Draw if Player's third card was 2-7
- 5: Draw if Player's third card was 4-7
- 6: Draw if Player's third card was 6-7
- 7: Always stand
- 8-9: Natural (no draw)

If Player stood (6-7): Banker draws on 0-5, stands on 6-7"""


def should_player_draw(player_value: int) -> bool:
    return player_value <= PLAYER_DRAW_MAX


def should_banker_draw_after_player_drew(banker_value: int, player_third_value: int) -> bool:
    """Banker decision from the fixed table once the Player has drawn.

    Examples:
        >>> should_banker_draw_after_player_drew(3, 8)
        False
        >>> should_banker_draw_after_player_drew(3, 0)
        True
        >>> should_banker_draw_after_player_drew(6, 7)
        True
    """
    return player_third_value in BANKER_DRAW_TABLE.get(banker_value, frozenset())


def should_banker_draw(
    banker_value: int,
    player_third_card: Card | None,
    player_stood: bool,
) -> bool:
    """Decide whether the Banker draws a third card.

    Args:
        banker_value: Banker's two-card value.
        player_third_card: The Player's third card, or None if the Player stood.
        player_stood: True if the Player did not draw.

    Raises:
        ValueError: If the Player drew but ``player_third_card`` is missing.
    """
    if banker_value >= BANKER_STAND_VALUE:
        return False
    if player_stood:
        return banker_value <= PLAYER_DRAW_MAX
    if player_third_card is None:
        raise ValueError("Player third card required when player did not stand")
    return should_banker_draw_after_player_drew(banker_value, card_value(player_third_card))


def explain_banker_decision(
    banker_value: int,
    player_third_card: Card | None,
    player_stood: bool,
    banker_drew: bool,
) -> str:
    """One-line explanation of the Banker's draw decision for the UI."""
    if banker_value >= 8:
        return f"Banker has natural {banker_value} - no draw"
    if banker_value == BANKER_STAND_VALUE:
        return "Banker stands on 7"

    if player_stood:
        verb = 'draws' if banker_drew else 'stands'
        return f"Player stood. Banker {verb} on {banker_value}"

    if player_third_card is None:
        return "Invalid state: Player drew but no third card provided"

    pip = card_value(player_third_card)
    action = f"Banker {'draws' if banker_drew else 'stands'} on {banker_value}"
    if banker_value <= 2:
        return f"{action} (always draws on 0-2)"
    if banker_value == 3:
        rule = 'stands on 8' if pip == 8 else 'draws otherwise'
    elif banker_value == 4:
        rule = 'draws on 2-7' if 2 <= pip <= 7 else 'stands otherwise'
    elif banker_value == 5:
        rule = 'draws on 4-7' if 4 <= pip <= 7 else 'stands otherwise'
    else:
        rule = 'draws on 6-7' if pip in (6, 7) else 'stands otherwise'
    return f"{action} (Player's third was {pip}, {rule})"
