"""Tests for arcturus_casino/blackjack/rules.py — dealer rule and settlement."""

from __future__ import annotations

import pytest

from arcturus_casino.blackjack.rules import (
    RoundResult,
    settle_hand,
    should_dealer_hit,
    should_dealer_stand,
)
from tests.conftest import hand


class TestDealerRule:
    @pytest.mark.parametrize('cards', [('10S', '6H'), ('2S', '3H'), ('AS', '5H'), ('9S', '7H')])
    def test_hits_on_sixteen_or_less(self, cards):
        assert should_dealer_hit(hand(*cards))
        assert not should_dealer_stand(hand(*cards))

    def test_stands_on_hard_seventeen(self):
        assert not should_dealer_hit(hand('10S', '7H'))
        assert should_dealer_stand(hand('10S', '7H'))

    def test_stands_on_soft_seventeen(self):
        assert not should_dealer_hit(hand('AS', '6H'))
        assert should_dealer_stand(hand('AS', '6H'))

    def test_busted_dealer_does_not_hit(self):
        assert not should_dealer_hit(hand('10S', '6H', 'KD'))
        assert should_dealer_stand(hand('10S', '6H', 'KD'))


class TestSettleHandNaturals:
    """Blackjack checks come before every other rule."""

    def test_both_blackjack_push(self):
        assert settle_hand(hand('AS', 'KH'), hand('AD', 'QC'), 100) == (RoundResult.PUSH, 100)

    def test_player_blackjack_pays_three_to_two(self):
        assert settle_hand(hand('AS', 'KH'), hand('10D', '9C'), 100) == (RoundResult.BLACKJACK, 250)

    def test_blackjack_profit_floored(self):
        # 15 * 3/2 = 22.5 -> 22
        assert settle_hand(hand('AS', 'KH'), hand('10D', '9C'), 15) == (RoundResult.BLACKJACK, 37)

    def test_blackjack_beats_three_card_21(self):
        result, _ = settle_hand(hand('AS', 'KH'), hand('7D', '7C', '7S'), 10)
        assert result is RoundResult.BLACKJACK

    def test_dealer_blackjack_beats_three_card_21(self):
        assert settle_hand(hand('7D', '7C', '7S'), hand('AS', 'KH'), 50) == (RoundResult.LOSS, 0)


class TestSettleHandBusts:
    def test_player_bust_loses(self):
        assert settle_hand(hand('KS', 'QH', '5D'), hand('10D', '7C'), 50) == (RoundResult.LOSS, 0)

    def test_player_bust_loses_to_busted_dealer(self):
        result = settle_hand(hand('KS', 'QH', '5D'), hand('10D', '6C', 'KH'), 50)
        assert result == (RoundResult.LOSS, 0)

    def test_dealer_bust_pays_even_money(self):
        result = settle_hand(hand('10S', '2H'), hand('10D', '6C', 'KH'), 50)
        assert result == (RoundResult.WIN, 100)


class TestSettleHandComparison:
    def test_higher_total_wins(self):
        assert settle_hand(hand('10S', '9H'), hand('10D', '8C'), 40) == (RoundResult.WIN, 80)

    def test_lower_total_loses(self):
        assert settle_hand(hand('10S', '7H'), hand('10D', '8C'), 40) == (RoundResult.LOSS, 0)

    def test_equal_total_pushes(self):
        assert settle_hand(hand('10S', '8H'), hand('9D', '9C'), 40) == (RoundResult.PUSH, 40)

    def test_doubled_stake(self):
        assert settle_hand(hand('5S', '6H', 'KD'), hand('10D', '9C'), 100) == (RoundResult.WIN, 200)
