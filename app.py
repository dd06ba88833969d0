"""Arcturus card tables — Streamlit front end.

Two tabs, each a full table backed by an in-process chip ledger:
  Tab 1 — Blackjack   (single deck, 3:2 naturals, split and double down)
  Tab 2 — Baccarat    (eight-deck Punto Banco, pair side bets, bead road)

Every settled round is synced to the ledger through a BalanceSyncController;
the round result is shown first and sync messages appear beneath it.

Environment:
    ARCTURUS_SETTINGS_DIR   settings directory (default: .arcturus)
    ARCTURUS_LOG_LEVEL      logging level (default: WARNING)

Run:
    streamlit run app.py
"""

from __future__ import annotations

import asyncio
import logging
import os

import streamlit as st

from arcturus_casino.analysis.history_charts import (
    build_balance_trail_figure,
    build_bead_road_figure,
    build_winner_counts_figure,
)
from arcturus_casino.baccarat.game import BaccaratGame
from arcturus_casino.baccarat.game_state import Phase as BaccaratPhase
from arcturus_casino.baccarat.hand import describe_hand
from arcturus_casino.baccarat.payout import BetType, payout_description
from arcturus_casino.blackjack.game import BlackjackGame
from arcturus_casino.blackjack.game_state import HandOutcome, Phase, PlayerAction
from arcturus_casino.blackjack.hand import hand_value_display
from arcturus_casino.blackjack.rules import RoundResult
from arcturus_casino.errors import GameRuleError
from arcturus_casino.settings import (
    JsonFileSettingsStore,
    baccarat_settings,
    blackjack_settings,
)
from arcturus_casino.sync.controller import BalanceSyncController
from arcturus_casino.sync.ledger import LocalLedger
from arcturus_casino.sync.protocol import GameType
from arcturus_casino.sync.stats import (
    baccarat_round_stats,
    baccarat_wire_outcome,
    blackjack_round_stats,
    overall_result,
    split_biggest_win_candidate,
    wire_outcome,
)

logging.basicConfig(
    level=os.environ.get("ARCTURUS_LOG_LEVEL", "WARNING").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("arcturus_casino.app")

SETTINGS_DIR = os.environ.get("ARCTURUS_SETTINGS_DIR", ".arcturus")
USER_ID = "local"

# ─── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Arcturus Card Tables",
    page_icon="🃏",
    layout="wide",
)


# ─── Session objects ──────────────────────────────────────────────────────────


class _Table:
    """Game, ledger, sync controller and UI log for one tab."""

    def __init__(self, game, settings, game_type: GameType) -> None:
        self.game = game
        self.settings = settings
        self.ledger = LocalLedger(starting_balance=game.balance, user_id=USER_ID)
        self.messages: list[str] = []
        self.result: str | None = None
        self.error: str | None = None
        self.balances: list[int] = [game.balance]
        self.controller = BalanceSyncController(
            self.ledger,
            game,
            game_type,
            max_bet=game.max_bet,
            status=self.messages.append,
            on_achievements=self._achievements,
        )

    def _achievements(self, achievements: list[dict]) -> None:
        for a in achievements:
            self.messages.append(f"Achievement unlocked: {a.get('name', a)}")

    def sync(self, round_stats, **kwargs) -> None:
        self.messages.clear()
        outcome = asyncio.run(self.controller.sync_round(round_stats, **kwargs))
        logger.debug("Round sync finished: %s", outcome.value)
        self.balances.append(self.game.balance)

    def reset_chips(self) -> None:
        if not self.settings.apply_to(self.game, reset_balance=True):
            self.error = "Finish the current round before resetting chips"
            return
        self.ledger.set_balance(USER_ID, self.game.balance)
        self.controller.reset_server_balance(self.game.balance)
        self.balances = [self.game.balance]
        self.messages.clear()
        self.result = None


def _new_blackjack_table() -> _Table:
    manager = blackjack_settings(JsonFileSettingsStore(SETTINGS_DIR), USER_ID)
    s = manager.settings
    game = BlackjackGame(initial_balance=s.starting_chips, min_bet=s.min_bet, max_bet=s.max_bet)
    return _Table(game, manager, GameType.BLACKJACK)


def _new_baccarat_table() -> _Table:
    manager = baccarat_settings(JsonFileSettingsStore(SETTINGS_DIR))
    s = manager.settings
    game = BaccaratGame(initial_balance=s.starting_chips, min_bet=s.min_bet, max_bet=s.max_bet)
    return _Table(game, manager, GameType.BACCARAT)


if "blackjack" not in st.session_state:
    st.session_state["blackjack"] = _new_blackjack_table()
if "baccarat" not in st.session_state:
    st.session_state["baccarat"] = _new_baccarat_table()

bj: _Table = st.session_state["blackjack"]
bac: _Table = st.session_state["baccarat"]


# ─── Blackjack actions ────────────────────────────────────────────────────────

_RESULT_LABELS: dict[RoundResult, str] = {
    RoundResult.BLACKJACK: "🎉 BLACKJACK! You win!",
    RoundResult.WIN: "✓ You win!",
    RoundResult.LOSS: "✗ Dealer wins",
    RoundResult.PUSH: "🤝 Push (Tie)",
}


def round_result_message(outcomes: list[HandOutcome]) -> str:
    """Headline for a settled round; split rounds list every hand."""
    if len(outcomes) == 1:
        return _RESULT_LABELS[outcomes[0].result]
    parts = [
        f"Hand {o.hand_index + 1}: {o.result.value} ({o.profit:+d})" for o in outcomes
    ]
    net = sum(o.profit for o in outcomes)
    return " | ".join(parts) + f", net {net:+d}"


def _finish_blackjack_round() -> None:
    game = bj.game
    if game.phase is Phase.DEALER_TURN:
        game.play_dealer_turn()
    if game.phase is not Phase.COMPLETE:
        return
    outcomes = game.settle_round()
    bj.result = round_result_message(outcomes)
    bj.sync(
        blackjack_round_stats(outcomes),
        outcome=wire_outcome(overall_result(outcomes)),
        biggest_win_candidate=split_biggest_win_candidate(outcomes),
        preserve_round_result=True,
    )


def _blackjack_action(action) -> None:
    bj.error = None
    try:
        action()
    except GameRuleError as exc:
        bj.error = str(exc)
        return
    _finish_blackjack_round()


def _blackjack_deal(amount: int) -> None:
    def deal() -> None:
        bj.game.start_new_round()
        bj.result = None
        bj.game.place_bet(amount)
        bj.game.deal()

    _blackjack_action(deal)


# ─── Baccarat actions ─────────────────────────────────────────────────────────


def _baccarat_bet(bet_type: BetType, amount: int) -> None:
    bac.error = None
    try:
        bac.game.place_bet(bet_type, amount)
    except GameRuleError as exc:
        bac.error = str(exc)


def _baccarat_deal() -> None:
    bac.error = None
    try:
        outcome = bac.game.deal()
    except GameRuleError as exc:
        bac.error = str(exc)
        return
    bac.result = f"{outcome.winner.value.title()} wins ({outcome.net_payout:+d} chips)"
    bac.sync(
        baccarat_round_stats(outcome),
        outcome=baccarat_wire_outcome(outcome),
        preserve_round_result=True,
    )


def _baccarat_next() -> None:
    bac.game.new_round()
    bac.result = None


# ─── Sidebar ──────────────────────────────────────────────────────────────────

with st.sidebar:
    st.title("🃏 Arcturus Tables")
    st.markdown("---")

    for label, table in (("Blackjack", bj), ("Baccarat", bac)):
        st.subheader(label)
        s = table.settings.settings
        min_bet = st.number_input(
            f"{label} min bet", min_value=1, value=s.min_bet, step=5, key=f"{label}_min"
        )
        max_bet = st.number_input(
            f"{label} max bet", min_value=1, value=s.max_bet, step=50, key=f"{label}_max"
        )
        starting = st.number_input(
            f"{label} starting chips", min_value=0, value=s.starting_chips, step=100,
            key=f"{label}_start",
        )
        if st.button(f"Save {label} settings", key=f"{label}_save"):
            table.settings.update(
                min_bet=int(min_bet), max_bet=int(max_bet), starting_chips=int(starting)
            )
            table.settings.apply_to(table.game)
            table.controller.max_bet = table.game.max_bet
        st.button(f"Reset {label} chips", key=f"{label}_reset", on_click=table.reset_chips)
        st.markdown("---")

    st.caption("Chips sync to a local ledger after every round.")


def _render_log(table: _Table) -> None:
    if table.error:
        st.error(table.error)
    if table.result:
        st.success(table.result)
    for message in table.messages:
        st.caption(message)


# ─── Tabs ─────────────────────────────────────────────────────────────────────

tab1, tab2 = st.tabs(["Blackjack", "Baccarat"])

# ── Tab 1: Blackjack ──────────────────────────────────────────────────────────

with tab1:
    game = bj.game
    state = game.state
    st.header("Blackjack")
    col1, col2, col3 = st.columns(3)
    col1.metric("Balance", f"{game.balance:,}")
    col2.metric("Server balance", f"{bj.controller.server_synced_balance:,}")
    col3.metric("Cards in deck", game.deck.remaining_cards())

    if state.dealer_hand.cards:
        dealer_cards = state.dealer_hand.cards
        if game.phase is Phase.PLAYER_TURN:
            st.markdown(f"**Dealer:** {dealer_cards[0].symbol} 🂠")
        else:
            shown = " ".join(c.symbol for c in dealer_cards)
            st.markdown(f"**Dealer:** {shown} ({hand_value_display(dealer_cards)})")
    for i, hand in enumerate(state.player_hands):
        if not hand.cards:
            continue
        marker = "▶ " if game.phase is Phase.PLAYER_TURN and i == state.active_hand_index else ""
        shown = " ".join(c.symbol for c in hand.cards)
        st.markdown(
            f"{marker}**Hand {i + 1}** (bet {hand.bet}): {shown} ({hand_value_display(hand.cards)})"
        )

    if game.phase is Phase.PLAYER_TURN:
        availability = game.action_availability()
        a1, a2, a3, a4 = st.columns(4)
        a1.button("Hit", on_click=_blackjack_action, args=(game.hit,))
        a2.button("Stand", on_click=_blackjack_action, args=(game.stand,))
        double = availability[PlayerAction.DOUBLE_DOWN]
        a3.button(
            "Double down",
            disabled=not double.available,
            help=double.reason,
            on_click=_blackjack_action,
            args=(game.double_down,),
        )
        split = availability[PlayerAction.SPLIT]
        a4.button(
            "Split",
            disabled=not split.available,
            help=split.reason,
            on_click=_blackjack_action,
            args=(game.split,),
        )
    else:
        bet = st.number_input(
            "Bet",
            min_value=game.min_bet,
            max_value=game.max_bet,
            value=game.min_bet,
            step=game.min_bet,
            key="bj_bet",
        )
        st.button(
            "Deal",
            type="primary",
            disabled=game.balance < game.min_bet,
            on_click=_blackjack_deal,
            args=(int(bet),),
        )

    _render_log(bj)

    st.markdown("---")
    st.plotly_chart(build_balance_trail_figure(bj.balances), use_container_width=True)

# ── Tab 2: Baccarat ───────────────────────────────────────────────────────────

with tab2:
    game = bac.game
    state = game.state
    st.header("Baccarat")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Balance", f"{game.balance:,}")
    col2.metric("On the table", f"{game.bet_total:,}")
    col3.metric("Server balance", f"{bac.controller.server_synced_balance:,}")
    col4.metric("Shoe", game.shoe_cards_remaining)

    if state.player_hand:
        st.markdown(f"**Player:** {describe_hand(state.player_hand)}")
        st.markdown(f"**Banker:** {describe_hand(state.banker_hand)}")

    if game.phase is BaccaratPhase.BETTING:
        chip = st.number_input(
            "Chip",
            min_value=game.min_bet,
            max_value=game.max_bet,
            value=game.min_bet,
            step=game.min_bet,
            key="bac_chip",
        )
        bet_cols = st.columns(len(BetType))
        for col, bet_type in zip(bet_cols, BetType):
            placed = state.bet_on(bet_type)
            col.button(
                f"{bet_type.value} ({payout_description(bet_type)})",
                key=f"bac_{bet_type.value}",
                on_click=_baccarat_bet,
                args=(bet_type, int(chip)),
            )
            if placed is not None:
                col.caption(f"{placed.amount} chips")
        d1, d2 = st.columns(2)
        d1.button("Deal", type="primary", disabled=not game.can_deal(), on_click=_baccarat_deal)
        d2.button("Clear bets", on_click=game.clear_bets)
    else:
        st.button("Next coup", type="primary", on_click=_baccarat_next)

    if game.has_insufficient_chips():
        st.warning("Not enough chips for the table minimum. Reset chips in the sidebar.")

    _render_log(bac)

    st.markdown("---")
    g1, g2 = st.columns(2)
    g1.plotly_chart(build_bead_road_figure(game.outcome_history), use_container_width=True)
    g2.plotly_chart(build_winner_counts_figure(game.statistics()), use_container_width=True)
    st.plotly_chart(build_balance_trail_figure(bac.balances), use_container_width=True)
