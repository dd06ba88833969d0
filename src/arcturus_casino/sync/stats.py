"""
Round statistics carried alongside a balance sync.

PendingStats accumulate the win/loss/hand counts of every settled round that
has not yet been confirmed by the server. They only ever grow until a sync
succeeds or the server corrects the balance, at which point they are cleared:

    round settled  ->  ensure_round_stats_included()   (once per round)
    sync failed    ->  kept; folded into the next attempt
    sync success   ->  settle_pending_stats()          (snapshot subtracted)

``biggest_win`` is a maximum, never a sum: combining two rounds keeps the
larger single-hand profit.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from arcturus_casino.baccarat.game_state import RoundOutcome
from arcturus_casino.blackjack.game_state import HandOutcome
from arcturus_casino.blackjack.rules import RoundResult


@dataclass(frozen=True)
class PendingStats:
    wins_increment: int = 0
    losses_increment: int = 0
    hands_increment: int = 0
    biggest_win: int = 0

    @property
    def is_empty(self) -> bool:
        return self == PendingStats()


def create_pending_stats() -> PendingStats:
    return PendingStats()


def add_pending_stats(pending: PendingStats, increment: PendingStats) -> PendingStats:
    """Counts add up; biggest_win keeps the larger value.

    Examples:
        >>> add_pending_stats(PendingStats(1, 0, 1, 50), PendingStats(0, 1, 1, 30))
        PendingStats(wins_increment=1, losses_increment=1, hands_increment=2, biggest_win=50)
    """
    return PendingStats(
        wins_increment=pending.wins_increment + increment.wins_increment,
        losses_increment=pending.losses_increment + increment.losses_increment,
        hands_increment=pending.hands_increment + increment.hands_increment,
        biggest_win=max(pending.biggest_win, increment.biggest_win),
    )


def ensure_round_stats_included(
    pending: PendingStats,
    increment: PendingStats,
    included: bool,
) -> tuple[PendingStats, bool]:
    """Fold one round's stats into ``pending`` unless already done.

    Returns:
        (pending stats, True) — the flag is always set afterwards.
    """
    if included:
        return pending, True
    return add_pending_stats(pending, increment), True


def clear_pending_stats() -> PendingStats:
    return PendingStats()


def reconcile_pending_biggest_win(current: int, snapshot: int) -> int:
    """Biggest win still unsent after a sync that carried ``snapshot``.

    A larger value observed while the request was in flight survives; an
    equal or smaller one was already covered and is dropped.
    """
    return current if current > snapshot else 0


def settle_pending_stats(current: PendingStats, snapshot: PendingStats) -> PendingStats:
    """Remove what a confirmed request carried, keeping anything added since."""
    return PendingStats(
        wins_increment=max(0, current.wins_increment - snapshot.wins_increment),
        losses_increment=max(0, current.losses_increment - snapshot.losses_increment),
        hands_increment=max(0, current.hands_increment - snapshot.hands_increment),
        biggest_win=reconcile_pending_biggest_win(current.biggest_win, snapshot.biggest_win),
    )


def mark_sync_pending_on_rate_limit(sync_pending: bool) -> bool:
    return True


# ─── Round builders ───────────────────────────────────────────────────────────

_WINNING = (RoundResult.WIN, RoundResult.BLACKJACK)


def blackjack_round_stats(outcomes: Sequence[HandOutcome]) -> PendingStats:
    """Stats for one blackjack round; each split hand counts separately."""
    return PendingStats(
        wins_increment=sum(1 for o in outcomes if o.result in _WINNING),
        losses_increment=sum(1 for o in outcomes if o.result is RoundResult.LOSS),
        hands_increment=len(outcomes),
        biggest_win=max((o.profit for o in outcomes if o.profit > 0), default=0),
    )


def overall_result(outcomes: Sequence[HandOutcome]) -> RoundResult:
    """Single result for a round: the majority of hands decides a split."""
    if len(outcomes) == 1:
        return outcomes[0].result
    wins = sum(1 for o in outcomes if o.result in _WINNING)
    losses = sum(1 for o in outcomes if o.result is RoundResult.LOSS)
    if wins > losses:
        if any(o.result is RoundResult.BLACKJACK for o in outcomes):
            return RoundResult.BLACKJACK
        return RoundResult.WIN
    if losses > wins:
        return RoundResult.LOSS
    return RoundResult.PUSH


def wire_outcome(result: RoundResult) -> str:
    """Outcome value for the balance endpoint (blackjack reports as a win)."""
    return 'win' if result is RoundResult.BLACKJACK else result.value


def split_biggest_win_candidate(outcomes: Sequence[HandOutcome]) -> int | None:
    """Largest single-hand profit of a split round, or None.

    Only reported when more than one hand settled and at least one of them
    made a profit.
    """
    if len(outcomes) <= 1:
        return None
    best = max(o.profit for o in outcomes)
    return best if best > 0 else None


def baccarat_round_stats(outcome: RoundOutcome) -> PendingStats:
    """One coup counts as one hand, won or lost by its net payout."""
    net = outcome.net_payout
    return PendingStats(
        wins_increment=1 if net > 0 else 0,
        losses_increment=1 if net < 0 else 0,
        hands_increment=1,
        biggest_win=max(net, 0),
    )


def baccarat_wire_outcome(outcome: RoundOutcome) -> str:
    net = outcome.net_payout
    if net > 0:
        return 'win'
    if net < 0:
        return 'loss'
    return 'push'
