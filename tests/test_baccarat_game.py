"""Tests for the baccarat state machine and its BaccaratGame wrapper.

Deal order is player, banker, player, banker; third cards follow in the
order the tableau draws them.
"""

from __future__ import annotations

import pytest

from arcturus_casino.baccarat.game import BaccaratGame
from arcturus_casino.baccarat.game_state import (
    MAX_HISTORY_LENGTH,
    BaccaratState,
    BalanceChanged,
    BetRemoved,
    CardDealt,
    Deal,
    NaturalDealt,
    Phase,
    PhaseEntered,
    PlaceBet,
    RoundComplete,
    SetBalance,
    ShoeReshuffled,
    ThirdCardDrawn,
    transition,
)
from arcturus_casino.baccarat.hand import Winner
from arcturus_casino.baccarat.payout import Bet, BetOutcome, BetType
from arcturus_casino.errors import (
    IllegalTransition,
    InsufficientBalance,
    InvalidBet,
    NoBetsPlaced,
)
from tests.conftest import StackedDeck, hand

# Player 9 (natural) vs Banker 5
PLAYER_NATURAL = ('9S', '2D', 'KH', '3C')
# Player 5 draws 4 -> 9; Banker 7 stands
PLAYER_DRAWS = ('2S', 'KD', '3H', '7C', '4D')
# Player 6 stands; Banker 4 draws 5 -> 9
BANKER_DRAWS = ('3S', '2D', '3H', '2C', '5S')
# 7 vs 7
TIE = ('KS', 'QD', '7H', '7C')


def table(*cards: str, **kwargs) -> BaccaratGame:
    return BaccaratGame(deck=StackedDeck(*cards), **kwargs)


# ─── Betting ──────────────────────────────────────────────────────────────────

class TestPlaceBet:
    def test_bet_recorded_not_deducted(self):
        game = table()
        game.place_bet(BetType.PLAYER, 100)
        assert game.state.active_bets == (Bet(BetType.PLAYER, 100),)
        assert game.bet_total == 100
        assert game.balance == 1000

    def test_same_spot_stacks(self):
        game = table()
        game.place_bet(BetType.BANKER, 100)
        game.place_bet(BetType.BANKER, 50)
        assert game.state.bet_on(BetType.BANKER) == Bet(BetType.BANKER, 150)
        assert len(game.state.active_bets) == 1

    def test_stack_capped_at_maximum(self):
        game = table(max_bet=300)
        game.place_bet(BetType.PLAYER, 200)
        with pytest.raises(InvalidBet, match='Maximum bet is 300'):
            game.place_bet(BetType.PLAYER, 200)

    def test_minimum(self):
        with pytest.raises(InvalidBet, match='Minimum bet is 10'):
            table().place_bet(BetType.TIE, 5)

    def test_maximum(self):
        with pytest.raises(InvalidBet, match='Maximum bet is 5000'):
            table(initial_balance=10_000).place_bet(BetType.TIE, 5001)

    def test_total_cannot_exceed_balance(self):
        game = table(initial_balance=100)
        game.place_bet(BetType.PLAYER, 60)
        with pytest.raises(InsufficientBalance, match='Available: 40'):
            game.place_bet(BetType.BANKER, 60)

    def test_only_in_betting(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        game.deal(timestamp=1.0)
        with pytest.raises(IllegalTransition, match='Can only place bets during betting phase'):
            game.place_bet(BetType.PLAYER, 50)


class TestRemoveAndClear:
    def test_remove_bet(self):
        game = table()
        game.place_bet(BetType.PLAYER, 100)
        game.place_bet(BetType.TIE, 20)
        assert game.remove_bet(BetType.PLAYER) is True
        assert game.state.active_bets == (Bet(BetType.TIE, 20),)

    def test_remove_missing_bet(self):
        assert table().remove_bet(BetType.BANKER) is False

    def test_remove_outside_betting(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        game.deal(timestamp=1.0)
        assert game.remove_bet(BetType.PLAYER) is False

    def test_clear_bets(self):
        game = table()
        game.place_bet(BetType.PLAYER, 100)
        game.place_bet(BetType.TIE, 20)
        game.clear_bets()
        assert game.state.active_bets == ()
        assert game.bet_total == 0


# ─── Dealing ──────────────────────────────────────────────────────────────────

class TestDeal:
    def test_requires_bets(self):
        game = table(*PLAYER_NATURAL)
        with pytest.raises(NoBetsPlaced, match='Place at least one bet'):
            game.deal()
        assert not game.can_deal()

    def test_no_bets_is_an_illegal_transition(self):
        with pytest.raises(IllegalTransition):
            table().deal()

    def test_deal_order(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        game.deal(timestamp=1.0)
        assert game.state.player_hand == hand('9S', 'KH')
        assert game.state.banker_hand == hand('2D', '3C')

    def test_natural_ends_coup(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        effects = game.dispatch(Deal(timestamp=1.0))
        assert NaturalDealt('player', 9) in effects
        assert not any(isinstance(e, ThirdCardDrawn) for e in effects)
        outcome = game.last_outcome
        assert outcome.winner is Winner.PLAYER
        assert outcome.is_natural
        assert game.phase is Phase.RESOLUTION

    def test_player_plus_tie_nets_zero(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        game.place_bet(BetType.TIE, 50)
        outcome = game.deal(timestamp=1.0)
        assert outcome.net_payout == 0
        assert outcome.total_bet == 100
        assert [r.outcome for r in outcome.bet_results] == [BetOutcome.WIN, BetOutcome.LOSE]
        assert game.balance == 1000

    def test_stake_deducted_then_credited(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.BANKER, 100)
        effects = game.dispatch(Deal(timestamp=1.0))
        balances = [e.balance for e in effects if isinstance(e, BalanceChanged)]
        assert balances == [900, 900]
        assert game.balance == 900

    def test_player_draws_third_card(self):
        game = table(*PLAYER_DRAWS)
        game.place_bet(BetType.PLAYER, 100)
        effects = game.dispatch(Deal(timestamp=1.0))
        phases = [e.phase for e in effects if isinstance(e, PhaseEntered)]
        assert phases == [Phase.DEALING, Phase.PLAYER_THIRD, Phase.RESOLUTION]
        assert CardDealt(hand('4D')[0], 'player', 2) in effects
        assert game.last_outcome.player_value == 9
        assert game.last_outcome.winner is Winner.PLAYER
        assert game.balance == 1100

    def test_banker_draws_after_player_stood(self):
        game = table(*BANKER_DRAWS)
        game.place_bet(BetType.BANKER, 100)
        effects = game.dispatch(Deal(timestamp=1.0))
        phases = [e.phase for e in effects if isinstance(e, PhaseEntered)]
        assert phases == [Phase.DEALING, Phase.BANKER_THIRD, Phase.RESOLUTION]
        assert ThirdCardDrawn('banker', hand('5S')[0]) in effects
        assert game.last_outcome.winner is Winner.BANKER
        assert game.balance == 1095

    def test_tie_pushes_main_bets(self):
        game = table(*TIE)
        game.place_bet(BetType.PLAYER, 100)
        outcome = game.deal(timestamp=1.0)
        assert outcome.winner is Winner.TIE
        assert outcome.bet_results[0].outcome is BetOutcome.PUSH
        assert game.balance == 1000

    def test_pair_side_bet(self):
        game = table('QS', '2D', 'QH', '5C', '9S')
        game.place_bet(BetType.PLAYER_PAIR, 10)
        outcome = game.deal(timestamp=1.0)
        assert outcome.player_pair
        assert not outcome.banker_pair
        assert outcome.net_payout == 110
        assert game.balance == 1110

    def test_reshuffle_happens_before_cards(self):
        deck = StackedDeck(*PLAYER_NATURAL, reshuffle=True)
        game = BaccaratGame(deck=deck)
        game.place_bet(BetType.PLAYER, 10)
        effects = game.dispatch(Deal(timestamp=1.0))
        assert effects[0] == ShoeReshuffled()
        assert deck.reshuffle_calls == 1

    def test_round_complete_effect_last(self):
        game = table(*TIE)
        game.place_bet(BetType.TIE, 10)
        effects = game.dispatch(Deal(timestamp=5.0))
        assert isinstance(effects[-1], RoundComplete)
        assert effects[-1].outcome.timestamp == 5.0


# ─── Table management ─────────────────────────────────────────────────────────

class TestNewRound:
    def test_resets_table_keeps_history(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        game.deal(timestamp=1.0)
        game.new_round()
        assert game.phase is Phase.BETTING
        assert game.state.active_bets == ()
        assert game.state.player_hand == ()
        assert len(game.outcome_history) == 1

    def test_history_newest_first_and_capped(self):
        game = table(*(PLAYER_NATURAL * (MAX_HISTORY_LENGTH + 1)))
        for i in range(MAX_HISTORY_LENGTH + 1):
            game.place_bet(BetType.PLAYER, 10)
            game.deal(timestamp=float(i))
            game.new_round()
        history = game.outcome_history
        assert len(history) == MAX_HISTORY_LENGTH
        assert history[0].timestamp == float(MAX_HISTORY_LENGTH)
        assert history[-1].timestamp == 1.0

    def test_statistics(self):
        game = table(*PLAYER_NATURAL, *TIE)
        for _ in range(2):
            game.place_bet(BetType.PLAYER, 10)
            game.deal(timestamp=1.0)
            game.new_round()
        assert game.statistics() == {Winner.PLAYER: 1, Winner.BANKER: 0, Winner.TIE: 1}
        assert game.winner is Winner.TIE


class TestBalanceAndSettings:
    def test_set_balance_in_betting(self):
        game = table()
        assert game.set_balance(250) is True
        assert game.balance == 250

    def test_set_balance_in_resolution(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 50)
        game.deal(timestamp=1.0)
        assert game.set_balance(777) is True
        assert game.balance == 777

    def test_negative_balance_refused(self):
        assert table().set_balance(-1) is False

    def test_balance_below_bets_clears_them(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 500)
        effects = game.dispatch(SetBalance(100))
        assert effects == (BetRemoved(BetType.PLAYER), BalanceChanged(100))
        assert game.state.active_bets == ()
        assert game.balance == 100
        with pytest.raises(NoBetsPlaced):
            game.deal()
        assert game.balance == 100

    def test_balance_covering_bets_keeps_them(self):
        game = table()
        game.place_bet(BetType.BANKER, 200)
        assert game.set_balance(200) is True
        assert game.state.bet_on(BetType.BANKER) == Bet(BetType.BANKER, 200)

    def test_committed_balance(self):
        game = table(*PLAYER_NATURAL)
        game.place_bet(BetType.PLAYER, 100)
        assert game.committed_balance == 1000
        game.deal(timestamp=1.0)
        assert game.committed_balance == game.balance == 1100

    def test_insufficient_chips(self):
        game = table(initial_balance=5)
        assert game.has_insufficient_chips()

    def test_update_settings_partial(self):
        game = table()
        game.update_settings(max_bet=2000)
        assert (game.min_bet, game.max_bet) == (10, 2000)

    def test_invalid_settings_ignored(self):
        game = table()
        game.update_bet_limits(100, 50)
        assert (game.min_bet, game.max_bet) == (10, 5000)

    def test_shoe_cards_remaining(self):
        assert table(*TIE).shoe_cards_remaining == 4


class TestTransition:
    def test_pure(self):
        state = BaccaratState()
        new_state, _ = transition(state, PlaceBet(BetType.PLAYER, 10), StackedDeck())
        assert state.active_bets == ()
        assert new_state.active_bets == (Bet(BetType.PLAYER, 10),)

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            transition(BaccaratState(), 'deal', StackedDeck())

    def test_deal_refuses_bets_above_balance(self):
        state = BaccaratState(balance=100, active_bets=(Bet(BetType.PLAYER, 500),))
        deck = StackedDeck(*PLAYER_NATURAL)
        with pytest.raises(InsufficientBalance):
            transition(state, Deal(timestamp=1.0), deck)
        assert deck.dealt == []
