"""Tests for arcturus_casino/sync/protocol.py — wire models and failure taxonomy."""

from __future__ import annotations

import math

import pytest

from arcturus_casino.sync.protocol import (
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
    resolve_sync_state,
    should_abandon_follow_up_sync,
)


class TestChipUpdateRequest:
    def test_payload_camel_case_without_nones(self):
        request = ChipUpdateRequest(previous_balance=1000, delta=-50, game_type=GameType.BLACKJACK)
        assert request.to_payload() == {
            'previousBalance': 1000,
            'delta': -50,
            'gameType': 'blackjack',
        }

    def test_full_payload(self):
        request = ChipUpdateRequest(
            previous_balance=1000,
            delta=150,
            game_type='baccarat',
            outcome='win',
            hand_count=2,
            wins_increment=1,
            losses_increment=1,
            biggest_win_candidate=200,
            max_bet=5000,
        )
        payload = request.to_payload()
        assert payload['gameType'] == 'baccarat'
        assert payload['handCount'] == 2
        assert payload['biggestWinCandidate'] == 200
        assert payload['maxBet'] == 5000

    def test_hand_count_must_be_positive(self):
        with pytest.raises(ValueError):
            ChipUpdateRequest(previous_balance=0, delta=0, game_type='blackjack', hand_count=0)


class TestEndpointReply:
    def test_success(self):
        reply = EndpointReply(200, {'success': True, 'balance': 1100, 'warnings': ['slow down']})
        result = reply.parse()
        assert isinstance(result, ChipUpdateSuccess)
        assert result.balance == 1100
        assert result.warnings == ['slow down']
        assert result.new_achievements == []

    def test_error_with_balance(self):
        reply = EndpointReply(409, {
            'success': False, 'error': 'BALANCE_MISMATCH', 'currentBalance': 750,
        })
        result = reply.parse()
        assert isinstance(result, ChipUpdateError)
        assert result.error == ErrorCode.BALANCE_MISMATCH
        assert result.current_balance == 750

    def test_malformed_success_body(self):
        result = EndpointReply(200, {'success': True}).parse()
        assert isinstance(result, ChipUpdateError)
        assert result.error is None
        assert 'HTTP 200' in result.message

    def test_ok(self):
        assert EndpointReply(204).ok
        assert not EndpointReply(429).ok


class TestClassifyFailure:
    def test_server_balance_corrects(self):
        assert classify_failure('INSUFFICIENT_BALANCE', True) is SyncFailureKind.CORRECTED

    def test_rate_limit_retryable_within_budget(self):
        assert classify_failure('RATE_LIMITED', False, attempt=2) is SyncFailureKind.RETRYABLE

    def test_rate_limit_deferred_after_budget(self):
        assert classify_failure('RATE_LIMITED', False, attempt=3) is SyncFailureKind.DEFERRED

    @pytest.mark.parametrize('code', [
        'DELTA_EXCEEDS_LIMIT', 'INSUFFICIENT_BALANCE', 'INVALID_REQUEST', 'BALANCE_MISMATCH',
    ])
    def test_hard_rejects(self, code):
        assert classify_failure(code, False) is SyncFailureKind.HARD_REJECT

    @pytest.mark.parametrize('code', [None, 'DATABASE_ERROR', 'INVALID_DELTA', 'SOMETHING_NEW'])
    def test_everything_else_reverts(self, code):
        assert classify_failure(code, False) is SyncFailureKind.REVERTED


class TestResolveSyncState:
    def test_server_balance(self):
        assert resolve_sync_state('BALANCE_MISMATCH', True) == SyncResolution(True, False)

    def test_rate_limited(self):
        assert resolve_sync_state('RATE_LIMITED', False) == SyncResolution(False, True)

    def test_network_error(self):
        assert resolve_sync_state(None, False) == SyncResolution(False, True)

    @pytest.mark.parametrize('code', [
        'DELTA_EXCEEDS_LIMIT', 'INSUFFICIENT_BALANCE', 'INVALID_REQUEST', 'BALANCE_MISMATCH',
    ])
    def test_hard_rejects_not_pending(self, code):
        assert resolve_sync_state(code, False) == SyncResolution(False, False)


class TestRetryTiming:
    @pytest.mark.parametrize('header,expected', [
        ('3', 3), (' 5 ', 5), ('0', 0), (None, 2), ('soon', 2), ('-1', 2), ('1.5', 2),
    ])
    def test_parse_retry_after(self, header, expected):
        assert parse_retry_after(header) == expected

    def test_abandon_after_three(self):
        assert not should_abandon_follow_up_sync(2)
        assert should_abandon_follow_up_sync(3)

    @pytest.mark.parametrize('attempt,delay', [(1, 1.0), (2, 2.0), (3, 4.0), (4, 8.0), (10, 8.0)])
    def test_backoff(self, attempt, delay):
        assert follow_up_backoff_delay(attempt) == delay

    @pytest.mark.parametrize('attempt', [0, -3, math.nan])
    def test_backoff_invalid_attempts(self, attempt):
        assert follow_up_backoff_delay(attempt) == 1.0
