"""
Balance endpoint contract and sync-failure taxonomy.

Request (JSON, camelCase):
    previousBalance  int        last balance the client knows the server holds
    delta            int        live balance - previousBalance, at send time
    gameType         str        'blackjack' | 'baccarat'
    outcome          str?       'win' | 'loss' | 'push'
    handCount        int? >= 1
    winsIncrement    int? >= 0
    lossesIncrement  int? >= 0
    biggestWinCandidate int? >= 0
    maxBet           int?

Success body:  {success: true, balance, newAchievements?, warnings?}
Error body:    {success: false, error, message?, currentBalance?}

Failure classes, in the order they are checked:
    CORRECTED    the error carries currentBalance; server value is truth
    RETRYABLE    RATE_LIMITED within the retry budget
    DEFERRED     RATE_LIMITED with the budget spent; stats wait for next round
    HARD_REJECT  request refused outright; never retried automatically
    REVERTED     anything else (validation, server or network failure)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

CHIPS_UPDATE_PATH: str = '/api/chips/update'

MAX_RATE_LIMIT_RETRIES: int = 3
DEFAULT_RETRY_AFTER: int = 2          # seconds, when the header is missing
RETRY_BUFFER: float = 0.1             # seconds added on top of Retry-After

MAX_FOLLOW_UP_ATTEMPTS: int = 3
FOLLOW_UP_BASE_DELAY: float = 1.0
FOLLOW_UP_MAX_DELAY: float = 8.0


class GameType(str, Enum):
    BLACKJACK = 'blackjack'
    BACCARAT = 'baccarat'


class ErrorCode(str, Enum):
    UNAUTHORIZED = 'UNAUTHORIZED'
    INVALID_REQUEST = 'INVALID_REQUEST'
    INVALID_REQUEST_BODY = 'INVALID_REQUEST_BODY'
    INVALID_DELTA = 'INVALID_DELTA'
    INVALID_GAME_TYPE = 'INVALID_GAME_TYPE'
    INVALID_OUTCOME = 'INVALID_OUTCOME'
    INVALID_SPLIT_HAND_CONSISTENCY = 'INVALID_SPLIT_HAND_CONSISTENCY'
    INVALID_HAND_COUNT = 'INVALID_HAND_COUNT'
    INVALID_WINS_INCREMENT = 'INVALID_WINS_INCREMENT'
    INVALID_LOSSES_INCREMENT = 'INVALID_LOSSES_INCREMENT'
    INVALID_BIGGEST_WIN_CANDIDATE = 'INVALID_BIGGEST_WIN_CANDIDATE'
    DELTA_EXCEEDS_LIMIT = 'DELTA_EXCEEDS_LIMIT'
    INSUFFICIENT_BALANCE = 'INSUFFICIENT_BALANCE'
    BALANCE_MISMATCH = 'BALANCE_MISMATCH'
    RATE_LIMITED = 'RATE_LIMITED'
    DATABASE_ERROR = 'DATABASE_ERROR'
    DATABASE_UNAVAILABLE = 'DATABASE_UNAVAILABLE'


HARD_REJECT_CODES: frozenset[str] = frozenset({
    ErrorCode.DELTA_EXCEEDS_LIMIT.value,
    ErrorCode.INSUFFICIENT_BALANCE.value,
    ErrorCode.INVALID_REQUEST.value,
    ErrorCode.BALANCE_MISMATCH.value,
})


# ─── Wire models ──────────────────────────────────────────────────────────────

class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class ChipUpdateRequest(_WireModel):
    previous_balance: int
    delta: int
    game_type: GameType
    outcome: Optional[Literal['win', 'loss', 'push']] = None
    hand_count: Optional[int] = Field(None, ge=1)
    wins_increment: Optional[int] = Field(None, ge=0)
    losses_increment: Optional[int] = Field(None, ge=0)
    biggest_win_candidate: Optional[int] = Field(None, ge=0)
    max_bet: Optional[int] = None

    def to_payload(self) -> dict[str, Any]:
        """JSON body: camelCase keys, unset optionals omitted."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class ChipUpdateSuccess(_WireModel):
    success: Literal[True] = True
    balance: int
    new_achievements: list[dict[str, Any]] = []
    warnings: list[str] = []


class ChipUpdateError(_WireModel):
    success: Literal[False] = False
    error: Optional[str] = None
    message: Optional[str] = None
    current_balance: Optional[int] = None


@dataclass(frozen=True)
class EndpointReply:
    """Transport-neutral endpoint reply: HTTP status, JSON body, Retry-After."""
    status: int
    body: dict[str, Any] = field(default_factory=dict)
    retry_after: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def parse(self) -> ChipUpdateSuccess | ChipUpdateError:
        """Interpret the body; a malformed body reads as an error without a code."""
        try:
            if self.ok:
                return ChipUpdateSuccess.model_validate(self.body)
            return ChipUpdateError.model_validate(self.body)
        except ValidationError:
            return ChipUpdateError(message=f"Malformed response (HTTP {self.status})")


# ─── Failure taxonomy ─────────────────────────────────────────────────────────

class SyncFailureKind(Enum):
    RETRYABLE = 'retryable'
    DEFERRED = 'deferred'
    CORRECTED = 'corrected'
    REVERTED = 'reverted'
    HARD_REJECT = 'hard_reject'


@dataclass(frozen=True)
class SyncResolution:
    clear_pending_stats: bool
    sync_pending: bool


def classify_failure(
    error: str | None,
    has_server_balance: bool,
    attempt: int = 0,
    max_retries: int = MAX_RATE_LIMIT_RETRIES,
) -> SyncFailureKind:
    """Classify a failed sync attempt.

    Args:
        error: Error code from the body, None for network failures.
        has_server_balance: True if the body carried ``currentBalance``.
        attempt: 0-based attempt number of the failed request.
        max_retries: Rate-limit retries allowed per sync cycle.
    """
    if has_server_balance:
        return SyncFailureKind.CORRECTED
    if error == ErrorCode.RATE_LIMITED:
        return SyncFailureKind.RETRYABLE if attempt < max_retries else SyncFailureKind.DEFERRED
    if error in HARD_REJECT_CODES:
        return SyncFailureKind.HARD_REJECT
    return SyncFailureKind.REVERTED


def resolve_sync_state(error: str | None, has_server_balance: bool) -> SyncResolution:
    """Whether pending stats can be dropped and whether a sync is still owed.

    Examples:
        >>> resolve_sync_state('BALANCE_MISMATCH', True)
        SyncResolution(clear_pending_stats=True, sync_pending=False)
        >>> resolve_sync_state('RATE_LIMITED', False)
        SyncResolution(clear_pending_stats=False, sync_pending=True)
        >>> resolve_sync_state('DELTA_EXCEEDS_LIMIT', False)
        SyncResolution(clear_pending_stats=False, sync_pending=False)
    """
    if has_server_balance:
        return SyncResolution(clear_pending_stats=True, sync_pending=False)
    if error in HARD_REJECT_CODES:
        return SyncResolution(clear_pending_stats=False, sync_pending=False)
    return SyncResolution(clear_pending_stats=False, sync_pending=True)


# ─── Retry timing ─────────────────────────────────────────────────────────────

def parse_retry_after(header: str | None) -> int:
    """Retry-After in whole seconds; 2 when missing or unparsable."""
    if header is None:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = int(header.strip())
    except ValueError:
        return DEFAULT_RETRY_AFTER
    return seconds if seconds >= 0 else DEFAULT_RETRY_AFTER


def should_abandon_follow_up_sync(attempt: int) -> bool:
    return attempt >= MAX_FOLLOW_UP_ATTEMPTS


def follow_up_backoff_delay(attempt: float) -> float:
    """Exponential follow-up delay in seconds: 1, 2, 4, then 8 from attempt 4 on.

    Zero, negative and NaN attempts fall back to the base delay.
    """
    if math.isnan(attempt) or attempt <= 0:
        return FOLLOW_UP_BASE_DELAY
    exponent = int(min(attempt, 4)) - 1
    return min(FOLLOW_UP_BASE_DELAY * 2 ** exponent, FOLLOW_UP_MAX_DELAY)
