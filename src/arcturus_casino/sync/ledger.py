"""
LocalLedger — in-process implementation of the chip balance endpoint.

Serves anonymous/local sessions (the Streamlit table) and tests with the
same request/response contract as the HTTP endpoint. Checks run in this
order and the first failure is returned:

    1. rate limit           429 RATE_LIMITED (+ Retry-After)
    2. body validation      400 INVALID_* / INVALID_REQUEST_BODY
    3. per-game delta cap   400 DELTA_EXCEEDS_LIMIT
    4. optimistic lock      409 BALANCE_MISMATCH (+ currentBalance)
    5. non-negative result  400 INSUFFICIENT_BALANCE (+ currentBalance)

Only a successful update advances the rate-limit clock. Per-game stats are
recorded only for requests that describe a round (an outcome or hand counts).

Per-request delta limits:

    game       | max win | max loss
    -----------+---------+---------
    blackjack  |  60 000 |   40 000
    baccarat   | 200 000 |  100 000
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from arcturus_casino.sync.protocol import ChipUpdateRequest, EndpointReply, ErrorCode, GameType

logger = logging.getLogger(__name__)

MIN_UPDATE_INTERVAL: float = 2.0    # seconds between accepted updates per user

GAME_LIMITS: dict[str, tuple[int, int]] = {
    GameType.BLACKJACK.value: (60_000, 40_000),
    GameType.BACCARAT.value: (200_000, 100_000),
}

VALID_OUTCOMES: frozenset[str] = frozenset({'win', 'loss', 'push'})


@dataclass
class GameStats:
    wins: int = 0
    losses: int = 0
    hands_played: int = 0
    biggest_win: int = 0


@dataclass
class Account:
    balance: int
    last_update: float | None = None
    stats: dict[str, GameStats] = field(default_factory=dict)


class LedgerRejection(Exception):
    def __init__(self, status: int, code: ErrorCode, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.extra = extra

    def reply(self, retry_after: str | None = None) -> EndpointReply:
        body = {'success': False, 'error': self.code.value, 'message': str(self), **self.extra}
        return EndpointReply(self.status, body, retry_after)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_count(body: dict, key: str, code: ErrorCode, minimum: int) -> int | None:
    value = body.get(key)
    if value is None:
        return None
    if not _is_int(value) or value < minimum:
        raise LedgerRejection(400, code, f"{key} must be an integer >= {minimum}")
    return value


class LocalLedger:
    """Authoritative chip balances for local users.

    Args:
        starting_balance: Balance of a user on first contact.
        user_id: User that ``update_chips()`` acts for.
        clock: Monotonic time source in seconds (injectable for tests).
        min_interval: Minimum seconds between accepted updates.
    """

    def __init__(
        self,
        starting_balance: int = 1000,
        user_id: str = 'local',
        clock: Callable[[], float] = time.monotonic,
        min_interval: float = MIN_UPDATE_INTERVAL,
    ) -> None:
        self.starting_balance = starting_balance
        self.user_id = user_id
        self._clock = clock
        self.min_interval = min_interval
        self._accounts: dict[str, Account] = {}

    # ── Accounts ──────────────────────────────────────────────────────────────

    def account(self, user_id: str) -> Account:
        if user_id not in self._accounts:
            self._accounts[user_id] = Account(balance=self.starting_balance)
        return self._accounts[user_id]

    def balance(self, user_id: str | None = None) -> int:
        return self.account(user_id or self.user_id).balance

    def set_balance(self, user_id: str, balance: int) -> None:
        """Administrative override (e.g. a settings reset of starting chips)."""
        self.account(user_id).balance = balance

    def stats(self, user_id: str, game_type: str) -> GameStats:
        return self.account(user_id).stats.setdefault(game_type, GameStats())

    # ── Endpoint ──────────────────────────────────────────────────────────────

    async def update_chips(self, request: ChipUpdateRequest) -> EndpointReply:
        return self.handle(self.user_id, request.to_payload())

    def handle(self, user_id: str, body: Any) -> EndpointReply:
        """Process one raw JSON request body for ``user_id``."""
        account = self.account(user_id)
        now = self._clock()

        if account.last_update is not None and now - account.last_update < self.min_interval:
            wait = math.ceil(self.min_interval - (now - account.last_update))
            logger.warning("Rate limited chip update for %s (retry in %ds)", user_id, wait)
            return LedgerRejection(
                429, ErrorCode.RATE_LIMITED,
                f"Please wait {wait} second(s) before updating chips again",
            ).reply(retry_after=str(wait))

        try:
            reply = self._apply(user_id, account, body)
        except LedgerRejection as rejection:
            logger.info("Rejected chip update for %s: %s", user_id, rejection.code.value)
            return rejection.reply()
        account.last_update = now
        return reply

    def _apply(self, user_id: str, account: Account, body: Any) -> EndpointReply:
        if not isinstance(body, dict):
            raise LedgerRejection(
                400, ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object"
            )

        delta = body.get('delta')
        if not _is_int(delta):
            raise LedgerRejection(400, ErrorCode.INVALID_DELTA, "Delta must be an integer")

        game_type = body.get('gameType')
        if not isinstance(game_type, str):
            raise LedgerRejection(400, ErrorCode.INVALID_REQUEST_BODY, "gameType must be a string")
        if game_type not in GAME_LIMITS:
            raise LedgerRejection(400, ErrorCode.INVALID_GAME_TYPE, "Invalid game type")

        outcome = body.get('outcome')
        if outcome is not None and outcome not in VALID_OUTCOMES:
            raise LedgerRejection(400, ErrorCode.INVALID_OUTCOME, "Invalid outcome")

        hand_count = _optional_count(body, 'handCount', ErrorCode.INVALID_HAND_COUNT, 1)
        wins = _optional_count(body, 'winsIncrement', ErrorCode.INVALID_WINS_INCREMENT, 0)
        losses = _optional_count(body, 'lossesIncrement', ErrorCode.INVALID_LOSSES_INCREMENT, 0)
        candidate = _optional_count(
            body, 'biggestWinCandidate', ErrorCode.INVALID_BIGGEST_WIN_CANDIDATE, 0
        )
        hands = hand_count or 1
        if (wins or 0) + (losses or 0) > hands:
            raise LedgerRejection(
                400, ErrorCode.INVALID_SPLIT_HAND_CONSISTENCY,
                "Wins and losses cannot exceed hand count",
            )

        max_win, max_loss = GAME_LIMITS[game_type]
        if delta > max_win:
            logger.warning("Win of %d in %s exceeds limit %d", delta, game_type, max_win)
            raise LedgerRejection(
                400, ErrorCode.DELTA_EXCEEDS_LIMIT,
                f"Win amount exceeds maximum allowed for {game_type} ({max_win})",
            )
        if delta < -max_loss:
            raise LedgerRejection(
                400, ErrorCode.DELTA_EXCEEDS_LIMIT,
                f"Loss amount exceeds maximum allowed for {game_type} ({max_loss})",
            )

        client_previous = body.get('previousBalance')
        if client_previous is not None and not _is_int(client_previous):
            raise LedgerRejection(
                400, ErrorCode.INVALID_REQUEST_BODY, "previousBalance must be a number if provided"
            )
        previous = account.balance
        if client_previous is not None and client_previous != previous:
            logger.warning(
                "Balance mismatch for %s: client %d, ledger %d", user_id, client_previous, previous
            )
            raise LedgerRejection(
                409, ErrorCode.BALANCE_MISMATCH,
                "Balance has changed. Please refresh and try again.",
                currentBalance=previous,
            )

        new_balance = previous + delta
        if new_balance < 0:
            raise LedgerRejection(
                400, ErrorCode.INSUFFICIENT_BALANCE,
                "Insufficient chip balance for this operation",
                currentBalance=previous,
            )

        account.balance = new_balance
        # A bare balance resync carries no round
        if any(v is not None for v in (outcome, hand_count, wins, losses)):
            self._record_stats(
                user_id, game_type, delta, outcome, hand_count, wins, losses, candidate
            )
        logger.debug("Chip update for %s: %d -> %d", user_id, previous, new_balance)
        return EndpointReply(200, {
            'success': True,
            'balance': new_balance,
            'previousBalance': previous,
            'delta': delta,
            'message': 'Chip balance updated successfully',
        })

    def _record_stats(
        self,
        user_id: str,
        game_type: str,
        delta: int,
        outcome: str | None,
        hand_count: int | None,
        wins: int | None,
        losses: int | None,
        candidate: int | None,
    ) -> None:
        stats = self.stats(user_id, game_type)
        stats.hands_played += hand_count or 1
        # Explicit counts win over the single-round outcome
        if wins is not None or losses is not None:
            stats.wins += wins or 0
            stats.losses += losses or 0
        elif outcome == 'win':
            stats.wins += 1
        elif outcome == 'loss':
            stats.losses += 1

        # More than one hand means the delta may aggregate several wins, so only
        # an explicit candidate can raise the biggest win.
        if candidate is not None:
            peak = candidate
        elif (hand_count or 1) > 1:
            peak = 0
        else:
            peak = delta
        stats.biggest_win = max(stats.biggest_win, peak)
