"""Plotly round-history figures for the table UI.

Three public functions:

    build_winner_counts_figure(statistics)
        — Bar chart of Player / Banker / Tie wins in the recent history.
    build_bead_road_figure(history)
        — Baccarat bead road: one cell per coup, oldest top-left, filled
          column by column (6 rows per column).
    build_balance_trail_figure(balances)
        — Line of the chip balance after each round.

All builders return a ``go.Figure`` and never mutate their inputs; the
Streamlit table embeds them with ``st.plotly_chart``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np
import plotly.graph_objects as go

from arcturus_casino.baccarat.game_state import RoundOutcome
from arcturus_casino.baccarat.hand import Winner

# ─── Constants ────────────────────────────────────────────────────────────────

BEAD_ROAD_ROWS: int = 6

_WINNER_ORDER: list[Winner] = [Winner.PLAYER, Winner.BANKER, Winner.TIE]
_WINNER_CODES: dict[Winner, int] = {w: i for i, w in enumerate(_WINNER_ORDER)}
_WINNER_LETTERS: dict[Winner, str] = {Winner.PLAYER: "P", Winner.BANKER: "B", Winner.TIE: "T"}
_WINNER_COLOURS: dict[Winner, str] = {
    Winner.PLAYER: "#1f77b4",
    Winner.BANKER: "#d62728",
    Winner.TIE: "#2ca02c",
}

# Discrete colorscale over codes 0 (player), 1 (banker), 2 (tie)
_BEAD_COLORSCALE: list[list] = [
    [0.0, _WINNER_COLOURS[Winner.PLAYER]],
    [0.333, _WINNER_COLOURS[Winner.PLAYER]],
    [0.334, _WINNER_COLOURS[Winner.BANKER]],
    [0.666, _WINNER_COLOURS[Winner.BANKER]],
    [0.667, _WINNER_COLOURS[Winner.TIE]],
    [1.0, _WINNER_COLOURS[Winner.TIE]],
]


# ─── Data builders ────────────────────────────────────────────────────────────


def build_bead_road_grid(
    history: Sequence[RoundOutcome],
    rows: int = BEAD_ROAD_ROWS,
) -> tuple[np.ndarray, list[list[str]]]:
    """Lay out a newest-first history as a bead-road grid.

    Returns:
        (codes, labels) where ``codes`` is a (rows, cols) float array of
        winner codes (NaN for empty cells) and ``labels`` the matching
        'P' / 'B' / 'T' strings.
    """
    oldest_first = list(reversed(history))
    cols = max(1, -(-len(oldest_first) // rows))
    codes = np.full((rows, cols), np.nan)
    labels = [["" for _ in range(cols)] for _ in range(rows)]
    for i, outcome in enumerate(oldest_first):
        r, c = i % rows, i // rows
        codes[r, c] = _WINNER_CODES[outcome.winner]
        labels[r][c] = _WINNER_LETTERS[outcome.winner]
    return codes, labels


# ─── Public figure builders ───────────────────────────────────────────────────


def build_winner_counts_figure(statistics: Mapping[Winner, int]) -> go.Figure:
    """Bar chart of how often each side won."""
    counts = [statistics.get(w, 0) for w in _WINNER_ORDER]
    fig = go.Figure(
        go.Bar(
            x=[w.value.title() for w in _WINNER_ORDER],
            y=counts,
            marker_color=[_WINNER_COLOURS[w] for w in _WINNER_ORDER],
            text=counts,
            textposition="auto",
        )
    )
    fig.update_layout(title_text="Winners (last 20 coups)", height=300, yaxis_title="Coups")
    return fig


def build_bead_road_figure(history: Sequence[RoundOutcome]) -> go.Figure:
    """Bead road heatmap of recent winners; hover shows each coup's totals."""
    codes, labels = build_bead_road_grid(history)
    oldest_first = list(reversed(history))
    hover = [["" for _ in row] for row in labels]
    for i, outcome in enumerate(oldest_first):
        hover[i % BEAD_ROAD_ROWS][i // BEAD_ROAD_ROWS] = (
            f"Coup {i + 1}<br>{outcome.winner.value.title()} "
            f"({outcome.player_value} vs {outcome.banker_value})"
        )

    z = [[None if np.isnan(v) else v for v in row] for row in codes.tolist()]
    fig = go.Figure(
        go.Heatmap(
            z=z,
            text=labels,
            texttemplate="%{text}",
            customdata=hover,
            hovertemplate="%{customdata}<extra></extra>",
            colorscale=_BEAD_COLORSCALE,
            zmin=0,
            zmax=2,
            showscale=False,
            xgap=2,
            ygap=2,
        )
    )
    fig.update_layout(title_text="Bead road", height=260)
    fig.update_yaxes(autorange="reversed", showticklabels=False)
    fig.update_xaxes(showticklabels=False)
    return fig


def build_balance_trail_figure(balances: Sequence[int]) -> go.Figure:
    """Chip balance after each round (index 0 is the starting balance)."""
    fig = go.Figure(
        go.Scatter(
            x=list(range(len(balances))),
            y=list(balances),
            mode="lines+markers",
            name="Balance",
        )
    )
    fig.update_layout(
        title_text="Balance by round",
        height=300,
        xaxis_title="Round",
        yaxis_title="Chips",
    )
    return fig
