"""
Baccarat bet settlement.

Payout table (profit per unit staked):

    Bet          | Wins when                        | Pays      | On a tie
    -------------+----------------------------------+-----------+---------
    player       | Player hand wins                 | 1:1       | push
    banker       | Banker hand wins                 | 0.95:1    | push
    tie          | hands tie                        | 8:1       | -
    playerPair   | Player's first two cards pair    | 11:1      | n/a
    bankerPair   | Banker's first two cards pair    | 11:1      | n/a

Pair bets are independent of the round winner. A BetResult's ``payout`` is
the *net* chip change for that bet: the profit on a win, 0 on a push and
minus the stake on a loss. Multipliers are exact fractions and every profit
is truncated toward zero, so balances stay whole chip counts.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction

from arcturus_casino.baccarat.hand import Winner


class BetType(Enum):
    PLAYER = 'player'
    BANKER = 'banker'
    TIE = 'tie'
    PLAYER_PAIR = 'playerPair'
    BANKER_PAIR = 'bankerPair'


class BetOutcome(Enum):
    WIN = 'win'
    LOSE = 'lose'
    PUSH = 'push'


PAYOUTS: dict[BetType, Fraction] = {
    BetType.PLAYER: Fraction(1),
    BetType.BANKER: Fraction(19, 20),     # 5% commission
    BetType.TIE: Fraction(8),
    BetType.PLAYER_PAIR: Fraction(11),
    BetType.BANKER_PAIR: Fraction(11),
}

_DESCRIPTIONS: dict[BetType, str] = {
    BetType.PLAYER: '1:1',
    BetType.BANKER: '0.95:1 (5% commission)',
    BetType.TIE: '8:1',
    BetType.PLAYER_PAIR: '11:1',
    BetType.BANKER_PAIR: '11:1',
}


@dataclass(frozen=True)
class Bet:
    type: BetType
    amount: int


@dataclass(frozen=True)
class BetResult:
    bet: Bet
    outcome: BetOutcome
    payout: int


def _profit(bet: Bet) -> int:
    # int() on a Fraction truncates toward zero
    return int(bet.amount * PAYOUTS[bet.type])


def _win(bet: Bet) -> BetResult:
    return BetResult(bet, BetOutcome.WIN, _profit(bet))


def _lose(bet: Bet) -> BetResult:
    return BetResult(bet, BetOutcome.LOSE, -bet.amount)


def calculate_payout(
    bet: Bet,
    winner: Winner,
    *,
    player_pair: bool = False,
    banker_pair: bool = False,
) -> BetResult:
    """Settle one bet against a round result.

    Examples:
        >>> calculate_payout(Bet(BetType.BANKER, 100), Winner.BANKER).payout
        95
        >>> calculate_payout(Bet(BetType.TIE, 100), Winner.TIE).payout
        800
        >>> calculate_payout(Bet(BetType.PLAYER, 100), Winner.TIE).outcome
        <BetOutcome.PUSH: 'push'>
    """
    if bet.type is BetType.PLAYER_PAIR:
        return _win(bet) if player_pair else _lose(bet)
    if bet.type is BetType.BANKER_PAIR:
        return _win(bet) if banker_pair else _lose(bet)
    if bet.type is BetType.TIE:
        return _win(bet) if winner is Winner.TIE else _lose(bet)

    # Player / Banker main bets push on a tie
    target = Winner.PLAYER if bet.type is BetType.PLAYER else Winner.BANKER
    if winner is target:
        return _win(bet)
    if winner is Winner.TIE:
        return BetResult(bet, BetOutcome.PUSH, 0)
    return _lose(bet)


def calculate_all_payouts(
    bets: Iterable[Bet],
    winner: Winner,
    *,
    player_pair: bool = False,
    banker_pair: bool = False,
) -> list[BetResult]:
    return [
        calculate_payout(b, winner, player_pair=player_pair, banker_pair=banker_pair)
        for b in bets
    ]


def calculate_total_payout(
    bets: Iterable[Bet],
    winner: Winner,
    *,
    player_pair: bool = False,
    banker_pair: bool = False,
) -> int:
    """Net chip change across all bets (stakes not included)."""
    return sum(
        r.payout
        for r in calculate_all_payouts(bets, winner, player_pair=player_pair, banker_pair=banker_pair)
    )


def payout_multiplier(bet_type: BetType) -> float:
    return float(PAYOUTS[bet_type])


def payout_description(bet_type: BetType) -> str:
    return _DESCRIPTIONS[bet_type]


def potential_winnings(amount: int, bet_type: BetType) -> int:
    """Profit a winning bet of ``amount`` would return, stake excluded."""
    return int(amount * PAYOUTS[bet_type])
