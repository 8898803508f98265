"""
Streamlit Frontend for Savings Duel

Two people log what they spend each day; the page shows who is winning
the head-to-head, how close each is to their monthly goal, and how the
running totals compare against the handicap line.

DESIGN PRINCIPLES:
1. The page only displays what the scoring engine computed
2. Every failed save says why, in plain language
3. The participant choice is remembered on this device
"""

import asyncio
from datetime import date

import plotly.graph_objects as go
import streamlit as st

from savings_duel.models.expense import Participant
from savings_duel.models.scoreboard import Scoreboard, Verdict
from savings_duel.orchestrator import (
    ExpenseCommitFlow,
    ScoreboardFlow,
    create_app_components,
)


# Page configuration
st.set_page_config(
    page_title="Savings Duel",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def verdict_text(verdict: Verdict, flow: ScoreboardFlow) -> str:
    rules = flow.rules
    if verdict is Verdict.A_WINS:
        return f"🏆 {rules.name_a} wins"
    if verdict is Verdict.B_WINS:
        return f"🏆 {rules.name_b} wins"
    if verdict is Verdict.DRAW:
        return "🤝 Draw"
    return "⏳ Not enough data yet"


def main():
    """Main application entry point."""
    commit_flow, scoreboard_flow, _ = get_components()

    # Each rerun pulls a fresh snapshot; a failure keeps the last good one
    run_async(scoreboard_flow.refresh())

    st.sidebar.title("💰 Savings Duel")
    render_participant_picker(commit_flow, scoreboard_flow)

    months = scoreboard_flow.ledger.months()
    month_choice = st.sidebar.selectbox(
        "Period",
        options=["All time"] + list(reversed(months)),
    )
    if month_choice == "All time":
        board = scoreboard_flow.scoreboard
    else:
        board = scoreboard_flow.scoreboard_for_month(month_choice)

    if scoreboard_flow.last_error:
        st.warning(
            "Could not load the latest data. Showing the last known results. "
            f"({scoreboard_flow.last_error})"
        )

    st.title("💰 Savings Duel")
    render_expense_form(commit_flow)
    st.markdown("---")
    render_scoreboard(board, scoreboard_flow)
    render_goals(board, scoreboard_flow)
    render_chart(board, scoreboard_flow)
    render_daily_table(board, scoreboard_flow)


def render_participant_picker(commit_flow: ExpenseCommitFlow, flow: ScoreboardFlow):
    current = commit_flow.current_participant()
    options = list(Participant)
    choice = st.sidebar.radio(
        "Who are you?",
        options=options,
        index=options.index(current) if current else 0,
        format_func=flow.rules.name_of,
    )
    if choice != current and st.sidebar.button("Remember me on this device"):
        run_async(commit_flow.choose_participant(choice))
        st.rerun()


def render_expense_form(commit_flow: ExpenseCommitFlow):
    st.subheader("📝 Record an expense")
    with st.form("expense_form", clear_on_submit=True):
        col1, col2, col3 = st.columns([1, 1, 2])
        with col1:
            spent_on = st.date_input("Date", value=date.today())
        with col2:
            amount = st.text_input("Amount", placeholder="1200")
        with col3:
            description = st.text_input("What for?", placeholder="Lunch")
        submitted = st.form_submit_button("Save", type="primary")

    if submitted:
        result = run_async(commit_flow.commit_expense(
            date=spent_on,
            amount=amount,
            description=description,
        ))
        if result.success:
            st.success(result.message)
            for warning in result.warnings:
                st.warning(warning)
        else:
            st.error(result.message)


def render_scoreboard(board: Scoreboard, flow: ScoreboardFlow):
    rules = flow.rules
    st.subheader("📊 Scoreboard")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric(f"{rules.name_a} daily wins", board.results.wins_a)
    col2.metric(f"{rules.name_b} daily wins", board.results.wins_b)
    col3.metric("Draws", board.results.draws)
    col4.metric("Overall", verdict_text(board.overall, flow))

    col1, col2 = st.columns(2)
    col1.metric(f"{rules.name_a} total", f"{board.totals.total_a:,}")
    col2.metric(f"{rules.name_b} total", f"{board.totals.total_b:,}")
    st.caption(
        f"{rules.name_b} is compared against {rules.handicap}× "
        f"{rules.name_a}'s spending."
    )


def render_goals(board: Scoreboard, flow: ScoreboardFlow):
    rules = flow.rules
    st.subheader("🎯 Monthly goals")
    for name, progress in ((rules.name_a, board.goal_a), (rules.name_b, board.goal_b)):
        st.markdown(
            f"**{name}**: {progress.total:,} / {progress.goal:,} ({progress.label})"
        )
        st.progress(int(progress.display_percent))
        if progress.overshoot:
            st.caption(f"{name} is over the goal.")


def render_chart(board: Scoreboard, flow: ScoreboardFlow):
    if not board.series:
        st.info("No expenses recorded yet.")
        return

    rules = flow.rules
    dates = [point.date for point in board.series]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=dates,
        y=[float(point.cumulative_a) for point in board.series],
        mode="lines+markers",
        name=rules.name_a,
    ))
    fig.add_trace(go.Scatter(
        x=dates,
        y=[float(point.cumulative_b) for point in board.series],
        mode="lines+markers",
        name=rules.name_b,
    ))
    fig.add_trace(go.Scatter(
        x=dates,
        y=[float(point.threshold) for point in board.series],
        mode="lines",
        name=f"{rules.name_a} × {rules.handicap}",
        line=dict(dash="dash"),
    ))
    fig.update_layout(margin=dict(t=30, b=10, l=10, r=10))
    st.plotly_chart(fig, use_container_width=True)


def render_daily_table(board: Scoreboard, flow: ScoreboardFlow):
    rules = flow.rules
    with st.expander("📅 Daily results"):
        st.dataframe(
            [
                {
                    "Date": day.date,
                    rules.name_a: f"{day.total_a:,}",
                    rules.name_b: f"{day.total_b:,}",
                    "Result": verdict_text(day.verdict, flow),
                }
                for day in reversed(board.days)
            ],
            use_container_width=True,
        )


if __name__ == "__main__":
    main()
