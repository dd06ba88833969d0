"""
BalanceSyncController — reconciles a table's optimistic balance with the
server ledger after every settled round.

The controller keeps a *watermark*, ``server_synced_balance``: the last
balance the server confirmed. Every attempt sends

    delta = game.balance - server_synced_balance

computed when the request is sent, so a retry that fires after more rounds
were played carries their net effect instead of a stale partial delta.

Reply handling:

    success                      watermark := balance used for the delta
                                 pending stats settled, retry cancelled
    RATE_LIMITED, budget left    retry after Retry-After + buffer; local
                                 balance and pending stats kept
    RATE_LIMITED, budget spent   give up for this cycle; stats ride along
                                 with the next round
    error with currentBalance    server value wins: watermark and table
                                 balance overwritten, pending stats cleared
    any other failure            table balance reverted to the watermark,
                                 pending stats cleared

At most one retry is outstanding. It lives in a single task slot and is
cancelled before any new attempt starts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from arcturus_casino.sync.client import BalanceEndpoint, BalanceTransportError
from arcturus_casino.sync.protocol import (
    MAX_RATE_LIMIT_RETRIES,
    RETRY_BUFFER,
    ChipUpdateError,
    ChipUpdateRequest,
    ChipUpdateSuccess,
    EndpointReply,
    ErrorCode,
    GameType,
    SyncFailureKind,
    SyncResolution,
    classify_failure,
    follow_up_backoff_delay,
    parse_retry_after,
    should_abandon_follow_up_sync,
)
from arcturus_casino.sync.stats import (
    PendingStats,
    clear_pending_stats,
    ensure_round_stats_included,
    mark_sync_pending_on_rate_limit,
    settle_pending_stats,
)

logger = logging.getLogger(__name__)


class SyncOutcome(Enum):
    SYNCED = 'synced'
    RETRY_SCHEDULED = 'retry_scheduled'
    DELAYED = 'delayed'
    CORRECTED = 'corrected'
    REVERTED = 'reverted'
    REJECTED = 'rejected'


class BalanceHolder(Protocol):
    @property
    def balance(self) -> int: ...

    @property
    def committed_balance(self) -> int: ...

    def set_balance(self, amount: int) -> bool: ...


@dataclass
class _RoundContext:
    stats: PendingStats
    outcome: str | None
    biggest_win_candidate: int | None
    included: bool = False


class BalanceSyncController:
    """Delta-based balance sync for one table.

    Args:
        endpoint: Balance endpoint (HTTP client or LocalLedger).
        game: The table; anything with ``balance``, ``committed_balance``
            (balance plus stakes still on the table) and ``set_balance()``.
        game_type: 'blackjack' or 'baccarat'.
        server_balance: Balance the server holds right now. Defaults to the
            table's current balance.
        max_bet: Table maximum, reported with each request.
        max_rate_limit_retries: Rate-limit retries per sync cycle.
        retry_buffer: Seconds added on top of Retry-After.
        status: Callback receiving short user-visible sync messages.
        on_achievements: Callback receiving newly granted achievements.
    """

    def __init__(
        self,
        endpoint: BalanceEndpoint,
        game: BalanceHolder,
        game_type: GameType | str,
        *,
        server_balance: int | None = None,
        max_bet: int | None = None,
        max_rate_limit_retries: int = MAX_RATE_LIMIT_RETRIES,
        retry_buffer: float = RETRY_BUFFER,
        status: Callable[[str], None] | None = None,
        on_achievements: Callable[[list[dict[str, Any]]], None] | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.game = game
        self.game_type = GameType(game_type)
        self.server_synced_balance = game.balance if server_balance is None else server_balance
        self.max_bet = max_bet
        self.max_rate_limit_retries = max_rate_limit_retries
        self.retry_buffer = retry_buffer
        self._status = status
        self._on_achievements = on_achievements

        self.pending = PendingStats()
        self.sync_pending = False
        self.last_resolution: SyncResolution | None = None
        self._round: _RoundContext | None = None
        self._preserve_round_result = False
        self._retry_task: asyncio.Task | None = None
        self._correction_offset = 0

    # ── Public API ────────────────────────────────────────────────────────────

    async def sync_round(
        self,
        round_stats: PendingStats,
        *,
        outcome: str | None = None,
        biggest_win_candidate: int | None = None,
        preserve_round_result: bool = False,
    ) -> SyncOutcome:
        """Sync the balance after one settled round.

        Args:
            round_stats: Win/loss/hand counts of this round.
            outcome: 'win' | 'loss' | 'push' for the round as a whole.
            biggest_win_candidate: Largest single-hand profit, for rounds
                that settled more than one hand.
            preserve_round_result: Keep interim sync messages from replacing
                a round result that is on screen.
        """
        self._round = _RoundContext(round_stats, outcome, biggest_win_candidate)
        self._preserve_round_result = preserve_round_result
        return await self._attempt(0)

    async def resync(self) -> SyncOutcome:
        """Send whatever the table still owes the server, outside a round."""
        return await self._attempt(0)

    @property
    def retry_scheduled(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def cancel_pending_retry(self) -> None:
        task, self._retry_task = self._retry_task, None
        if task is not None and not task.done():
            task.cancel()

    async def drain(self) -> None:
        """Wait until no retry or follow-up is outstanding."""
        while self._retry_task is not None:
            task = self._retry_task
            await asyncio.gather(task, return_exceptions=True)
            if self._retry_task is task:
                self._retry_task = None

    def reset_server_balance(self, balance: int) -> None:
        """Adopt ``balance`` as the server watermark (e.g. after a chip reset)."""
        self.cancel_pending_retry()
        self.server_synced_balance = balance
        self._correction_offset = 0
        self._clear_pending()

    # ── Attempt ───────────────────────────────────────────────────────────────

    async def _attempt(self, attempt: int, follow_up: int = 0) -> SyncOutcome:
        self.cancel_pending_retry()
        self._apply_deferred_correction()

        ctx = self._round
        if ctx is not None:
            self.pending, ctx.included = ensure_round_stats_included(
                self.pending, ctx.stats, ctx.included
            )

        balance_at_send = self.game.balance
        snapshot = self.pending
        request = self._build_request(balance_at_send - self.server_synced_balance, snapshot, ctx)

        try:
            reply = await self.endpoint.update_chips(request)
        except BalanceTransportError as exc:
            logger.error("Failed to update balance: %s", exc)
            self._revert()
            self._record_resolution(cleared=True)
            self._notify('Network error. Balance reverted.', force=True)
            return SyncOutcome.REVERTED

        result = reply.parse()
        if isinstance(result, ChipUpdateSuccess):
            return self._on_success(result, balance_at_send, snapshot, attempt, follow_up)
        return self._on_failure(reply, result, attempt, follow_up)

    def _build_request(
        self,
        delta: int,
        pending: PendingStats,
        ctx: _RoundContext | None,
    ) -> ChipUpdateRequest:
        explicit = ctx.biggest_win_candidate if ctx is not None else None
        candidate = None
        # A multi-hand request hides single-hand peaks inside its delta
        if explicit is not None or pending.hands_increment > 1:
            peak = max(explicit or 0, pending.biggest_win)
            candidate = peak if peak > 0 else None

        has_stats = pending.hands_increment > 0
        return ChipUpdateRequest(
            previous_balance=self.server_synced_balance,
            delta=delta,
            game_type=self.game_type,
            outcome=ctx.outcome if ctx is not None else None,
            hand_count=pending.hands_increment if has_stats else None,
            wins_increment=pending.wins_increment if has_stats else None,
            losses_increment=pending.losses_increment if has_stats else None,
            biggest_win_candidate=candidate,
            max_bet=self.max_bet,
        )

    # ── Reply handling ────────────────────────────────────────────────────────

    def _on_success(
        self,
        result: ChipUpdateSuccess,
        balance_at_send: int,
        snapshot: PendingStats,
        attempt: int,
        follow_up: int,
    ) -> SyncOutcome:
        self.server_synced_balance = balance_at_send
        self.pending = settle_pending_stats(self.pending, snapshot)
        self.sync_pending = not self.pending.is_empty
        self.last_resolution = None
        self._round = None
        logger.debug("Balance synced at %d", balance_at_send)

        if result.warnings:
            logger.warning("Server warnings: %s", result.warnings)
        if result.new_achievements and self._on_achievements is not None:
            self._on_achievements(result.new_achievements)
        if attempt > 0:
            self._notify('Balance synced successfully.')

        if self.sync_pending:
            # Stats folded in while the request was in flight
            self._schedule_follow_up(follow_up)
        return SyncOutcome.SYNCED

    def _on_failure(
        self,
        reply: EndpointReply,
        result: ChipUpdateError,
        attempt: int,
        follow_up: int,
    ) -> SyncOutcome:
        error = result.error
        has_server_balance = result.current_balance is not None
        kind = classify_failure(error, has_server_balance, attempt, self.max_rate_limit_retries)

        if kind is SyncFailureKind.RETRYABLE:
            delay = parse_retry_after(reply.retry_after) + self.retry_buffer
            logger.warning(
                "Chip update rate limited, retrying in %.1fs (attempt %d)", delay, attempt + 1
            )
            self.sync_pending = mark_sync_pending_on_rate_limit(self.sync_pending)
            self._notify('Syncing balance...')
            self._schedule(delay, attempt + 1, follow_up)
            self._record_resolution(cleared=False)
            return SyncOutcome.RETRY_SCHEDULED

        if kind is SyncFailureKind.DEFERRED:
            logger.error("Chip update rate limited, max retries exceeded")
            self.sync_pending = True
            self._record_resolution(cleared=False)
            self._notify('Sync delayed. Balance will update on next round.')
            return SyncOutcome.DELAYED

        if kind is SyncFailureKind.CORRECTED:
            server_balance = result.current_balance
            self.server_synced_balance = server_balance
            self._set_game_balance(server_balance)
            self._clear_pending()
            self._record_resolution(cleared=True)
            if error == ErrorCode.BALANCE_MISMATCH:
                logger.warning(
                    "Balance mismatch detected, synced to server balance %d", server_balance
                )
                self._notify('Balance corrected (server sync).')
            else:
                logger.info("Server reported balance %d after %s", server_balance, error)
                self._notify(f'Balance synced to {server_balance} chips.')
            return SyncOutcome.CORRECTED

        self._revert()
        self._record_resolution(cleared=True)
        if error == ErrorCode.DELTA_EXCEEDS_LIMIT:
            logger.error("Delta exceeded server limit: %s", result.message)
            self._notify('Payout exceeded limit. Please try a smaller bet.')
        else:
            logger.error("Chip update failed: %s %s", error, result.message)
            self._notify('Balance sync failed. Will retry next round.')
        return SyncOutcome.REJECTED if kind is SyncFailureKind.HARD_REJECT else SyncOutcome.REVERTED

    # ── Retry slot ────────────────────────────────────────────────────────────

    def _schedule(self, delay: float, attempt: int, follow_up: int) -> None:
        self.cancel_pending_retry()
        self._retry_task = asyncio.create_task(self._run_later(delay, attempt, follow_up))

    def _schedule_follow_up(self, follow_up: int) -> None:
        if should_abandon_follow_up_sync(follow_up):
            logger.warning("Abandoning follow-up sync after %d attempts", follow_up)
            return
        self._schedule(follow_up_backoff_delay(follow_up + 1), 0, follow_up + 1)

    async def _run_later(self, delay: float, attempt: int, follow_up: int) -> None:
        await asyncio.sleep(delay)
        # Vacate the slot first so the attempt does not cancel its own task
        self._retry_task = None
        try:
            await self._attempt(attempt, follow_up)
        except Exception:
            logger.exception("Retry failed")

    # ── Balance helpers ───────────────────────────────────────────────────────

    def _clear_pending(self) -> None:
        self.pending = clear_pending_stats()
        self.sync_pending = False
        self._round = None

    def _revert(self) -> None:
        self._set_game_balance(self.server_synced_balance)
        self._clear_pending()

    def _set_game_balance(self, target: int) -> None:
        if self.game.set_balance(target):
            self._correction_offset = 0
            return
        # Table is mid-round; the server value predates the stake on the table
        self._correction_offset = target - self.game.committed_balance
        logger.info(
            "Balance correction of %+d deferred until the table is idle", self._correction_offset
        )

    def _apply_deferred_correction(self) -> None:
        if not self._correction_offset:
            return
        target = max(0, self.game.committed_balance + self._correction_offset)
        if self.game.set_balance(target):
            logger.info("Applied deferred balance correction of %+d", self._correction_offset)
            self._correction_offset = 0

    def _record_resolution(self, cleared: bool) -> None:
        self.last_resolution = SyncResolution(
            clear_pending_stats=cleared, sync_pending=self.sync_pending
        )

    def _notify(self, message: str, force: bool = False) -> None:
        if self._status is None:
            return
        if force or not self._preserve_round_result:
            self._status(message)
