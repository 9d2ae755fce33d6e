"""
Visualization module for Halvcycle.

Creates:
- Interactive Plotly price chart with halving markers (whole history or one cycle)
- Cycle comparison chart normalized to the halving-day price
- Static HTML report with one card per cycle and key findings
"""

from collections.abc import Sequence
from datetime import date
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go

from analysis.cycles import CycleAnalysis
from analysis.events import HalvingEvent
from analysis.windows import select_cycle_prices
from config import CHART_HEIGHT, CHARTS_DIR, COLORS, CYCLE_COLORS
from utils.dates import DAY_MS
from utils.logging import get_logger

logger = get_logger(__name__)


def format_price(price: float | None) -> str:
    """Format a USD price without decimals, e.g. $63,821."""
    if price is None:
        return "n/a"
    return f"${price:,.0f}"


def format_percentage(value: float | None, signed: bool = False) -> str:
    """Format a percentage with two decimals; None (undefined) becomes 'n/a'."""
    if value is None:
        return "n/a"
    if signed:
        return f"{value:+.2f}%"
    return f"{value:.2f}%"


def format_date(d: date) -> str:
    return d.strftime("%b %d, %Y")


def summarize_cycle(analysis: CycleAnalysis) -> list[str]:
    """
    Key findings for one cycle as plain sentences.

    Args:
        analysis: Cycle analysis result

    Returns:
        Two or three lines: pre-halving gain, gain to peak, and the
        correction when one was detected
    """
    pre = analysis.pre_halving
    post = analysis.post_halving

    lines = [
        f"Pre-halving: {format_percentage(pre.percentage_gain, signed=True)} gain "
        "in the year before",
        f"Post-halving: {format_percentage(post.percentage_gain)} gain to peak "
        f"({post.days_to_peak} days)",
    ]
    if post.crash_date is not None:
        lines.append(
            f"Major correction: {format_percentage(post.percentage_from_peak)} from peak "
            f"on {format_date(post.crash_date)}"
        )
    return lines


def _cycle_color(index: int) -> str:
    return CYCLE_COLORS[index % len(CYCLE_COLORS)]


def create_price_chart(
    prices: pd.DataFrame,
    events: Sequence[HalvingEvent],
    cycle: int | None = None,
    output_path: Path | None = None,
) -> go.Figure:
    """
    Create the BTC/USD price chart with a marker line per halving.

    Args:
        prices: Full price series
        events: Configured halving events
        cycle: Restrict to this cycle's window (default: whole history)
        output_path: Path to save HTML file

    Returns:
        Plotly Figure
    """
    data = select_cycle_prices(prices, events, cycle)

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=data.index,
            y=data["price"],
            mode="lines",
            name="BTC Price",
            line={"color": COLORS["price_line"], "width": 2},
            hovertemplate="%{x|%b %d, %Y}<br>$%{y:,.0f}<extra></extra>",
        )
    )

    if not data.empty:
        first_ts = int(data["timestamp"].iloc[0])
        last_ts = int(data["timestamp"].iloc[-1])

        for event in events:
            if not first_ts <= event.timestamp_ms <= last_ts:
                continue

            halving_x = pd.Timestamp(event.date)
            fig.add_vline(
                x=halving_x,
                line_dash="dash",
                line_color=COLORS["halving_line"],
                opacity=0.7,
            )
            fig.add_annotation(
                x=halving_x,
                y=1.02,
                yref="paper",
                text=f"Halving {event.cycle}",
                showarrow=False,
                font={"color": COLORS["halving_line"]},
            )

    title = "Bitcoin Price and Halving Events"
    if cycle is not None:
        title = f"Bitcoin Price - Cycle {cycle}"

    fig.update_layout(
        title={"text": title, "font": {"size": 20}},
        xaxis={
            "title": "Date",
            "tickformat": "%b %Y",
            "gridcolor": "rgba(128, 128, 128, 0.2)",
        },
        yaxis={
            "title": "BTC Price (USD)",
            "type": "log",
            "tickprefix": "$",
            "gridcolor": "rgba(128, 128, 128, 0.2)",
        },
        template="plotly_dark",
        hovermode="x unified",
        height=CHART_HEIGHT,
    )

    if output_path:
        fig.write_html(output_path)

    return fig


def create_cycle_comparison_chart(
    prices: pd.DataFrame,
    analyses: Sequence[CycleAnalysis],
    output_path: Path | None = None,
) -> go.Figure:
    """
    Overlay the analysed cycles, normalized to 1.0 at the halving price.

    Peaks and corrections are marked on each cycle's trace.

    Args:
        prices: Full price series
        analyses: Cycle analysis results
        output_path: Path to save HTML file

    Returns:
        Plotly Figure
    """
    events = [HalvingEvent(date=a.halving_date, cycle=a.cycle) for a in analyses]

    fig = go.Figure()

    for i, analysis in enumerate(analyses):
        cycle_df = select_cycle_prices(prices, events, analysis.cycle)
        if cycle_df.empty:
            continue

        halving_ts = events[i].timestamp_ms
        halving_price = analysis.pre_halving.halving_price
        days_from_halving = (cycle_df["timestamp"] - halving_ts) // DAY_MS
        normalized = cycle_df["price"] / halving_price
        color = _cycle_color(i)
        name = f"Cycle {analysis.cycle} ({analysis.halving_date.year})"

        fig.add_trace(
            go.Scatter(
                x=days_from_halving,
                y=normalized,
                mode="lines",
                name=name,
                line={"color": color, "width": 2.5},
                legendgroup=f"cycle{analysis.cycle}",
                hovertemplate=(
                    f"Cycle {analysis.cycle}<br>"
                    "Day: %{x}<br>"
                    "Multiplier: %{y:.2f}x<br>"
                    f"(Halving price: {format_price(halving_price)})"
                    "<extra></extra>"
                ),
            )
        )

        post = analysis.post_halving
        marker_x = [post.days_to_peak]
        marker_y = [post.peak_price / halving_price]
        marker_colors = [COLORS["peak_marker"]]
        marker_text = [f"Peak {format_price(post.peak_price)}"]

        if post.crash_date is not None:
            marker_x.append((post.crash_date - analysis.halving_date).days)
            marker_y.append(post.crash_price / halving_price)
            marker_colors.append(COLORS["crash_marker"])
            marker_text.append(f"Correction {format_percentage(post.percentage_from_peak)}")

        fig.add_trace(
            go.Scatter(
                x=marker_x,
                y=marker_y,
                mode="markers",
                name=f"{name} markers",
                marker={"color": marker_colors, "size": 10, "line": {"color": color, "width": 2}},
                text=marker_text,
                legendgroup=f"cycle{analysis.cycle}",
                showlegend=False,
                hovertemplate="%{text}<br>Day: %{x}<extra></extra>",
            )
        )

    fig.update_layout(
        title={
            "text": "Bitcoin Halving Cycles - Normalized to Halving Day",
            "font": {"size": 22, "family": "Arial Black"},
        },
        xaxis={
            "title": "Days from Halving",
            "tickmode": "linear",
            "dtick": 100,
            "gridcolor": "rgba(128, 128, 128, 0.2)",
            "zeroline": True,
            "zerolinecolor": "white",
            "zerolinewidth": 2,
        },
        yaxis={
            "title": "Price Multiplier (1.0 = Halving Day)",
            "type": "log",
            "gridcolor": "rgba(128, 128, 128, 0.2)",
        },
        legend={
            "yanchor": "top",
            "y": 0.99,
            "xanchor": "left",
            "x": 0.01,
            "bgcolor": "rgba(0,0,0,0.5)",
        },
        template="plotly_dark",
        hovermode="closest",
        height=700,
        margin={"t": 80},
    )

    fig.add_vline(x=0, line_dash="dash", line_color="rgba(255,255,255,0.7)", line_width=2)
    fig.add_hline(y=1, line_dash="dot", line_color="rgba(255,255,255,0.3)")

    if output_path:
        fig.write_html(output_path)

    return fig


def _render_cycle_card(analysis: CycleAnalysis) -> str:
    pre = analysis.pre_halving
    post = analysis.post_halving

    gain_class = "positive" if (pre.percentage_gain or 0) > 0 else "negative"

    correction = ""
    if post.crash_date is not None:
        correction = f"""
                <div class="correction">
                    <p>Crash Date: {format_date(post.crash_date)}</p>
                    <p>Crash Price: {format_price(post.crash_price)}</p>
                    <p class="drawdown">Drawdown: {format_percentage(post.percentage_from_peak)}</p>
                </div>"""

    return f"""
        <div class="card">
            <h2>Cycle {analysis.cycle}</h2>
            <p class="halving-date">Halving Date: {format_date(analysis.halving_date)}</p>
            <div class="block">
                <h3 class="pre">Pre-Halving (1 Year Before)</h3>
                <p>Start: {format_price(pre.start_price)}</p>
                <p>At Halving: {format_price(pre.halving_price)}</p>
                <p class="gain {gain_class}">Gain: {format_percentage(pre.percentage_gain)}</p>
            </div>
            <div class="block">
                <h3 class="post">Post-Halving</h3>
                <p>Peak: {format_price(post.peak_price)}
                    <span class="muted">({post.days_to_peak} days)</span></p>
                <p class="gain positive">Gain from Halving: {format_percentage(post.percentage_gain)}</p>{correction}
            </div>
        </div>"""


def create_cycle_report_html(
    analyses: Sequence[CycleAnalysis],
    output_path: Path,
) -> Path:
    """
    Create a static HTML page summarizing every analysed cycle.

    Args:
        analyses: Cycle analysis results
        output_path: Path to save HTML file

    Returns:
        Path to created file
    """
    cards = "\n".join(_render_cycle_card(a) for a in analyses)

    findings = "\n".join(
        f"""
            <li>
                <strong>Cycle {a.cycle}:</strong>
                <ul>{"".join(f"<li>{line}</li>" for line in summarize_cycle(a))}</ul>
            </li>"""
        for a in analyses
    )

    if not analyses:
        cards = '<p class="muted">No halving cycle could be analysed.</p>'

    html_content = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Bitcoin Halving Cycle Analysis</title>
    <style>
        :root {{
            --bg-primary: #0a0e27;
            --bg-secondary: #1a1f3a;
            --border-color: #2a2f4a;
            --text-primary: #e0e0e0;
            --text-secondary: #a0a0a0;
            --accent-orange: #f7931a;
            --accent-green: #00ff88;
            --accent-red: #ff4444;
            --accent-blue: #88b3ff;
            --accent-amber: #ffaa00;
        }}
        body {{
            font-family: 'Segoe UI', sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            margin: 0 auto;
            padding: 2rem;
            max-width: 1400px;
        }}
        h1 {{ color: var(--accent-orange); font-size: 2.5rem; }}
        .subtitle {{ color: var(--text-secondary); font-size: 1.1rem; }}
        .grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(300px, 1fr));
            gap: 1.5rem;
        }}
        .card, .findings {{
            background: var(--bg-secondary);
            border: 1px solid var(--border-color);
            border-radius: 12px;
            padding: 1.5rem;
        }}
        .card h2, .findings h2 {{ color: var(--accent-orange); margin-top: 0; }}
        .halving-date {{ color: var(--accent-green); font-size: 0.9rem; }}
        .block {{
            background: var(--bg-primary);
            border-radius: 8px;
            padding: 1rem;
            margin-bottom: 1rem;
        }}
        .block p {{ margin: 0.3rem 0; font-size: 0.9rem; }}
        h3.pre {{ color: var(--accent-blue); }}
        h3.post {{ color: var(--accent-amber); }}
        .gain {{ font-weight: bold; font-size: 1.1rem !important; }}
        .positive {{ color: var(--accent-green); }}
        .negative {{ color: var(--accent-red); }}
        .correction {{ border-top: 1px solid var(--border-color); margin-top: 0.5rem; }}
        .drawdown {{ color: var(--accent-red); font-weight: bold; }}
        .muted {{ color: var(--text-secondary); font-size: 0.8rem; }}
        .findings {{ margin-top: 3rem; }}
        .findings li {{ line-height: 1.8; }}
    </style>
</head>
<body>
    <h1>Bitcoin Halving Cycle Analysis</h1>
    <p class="subtitle">Historical analysis of Bitcoin price patterns before and after halving events</p>

    <div class="grid">
{cards}
    </div>

    <div class="findings">
        <h2>Key Findings</h2>
        <ul>{findings}
        </ul>
    </div>
</body>
</html>
"""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(html_content)

    return output_path


def generate_all_charts(
    prices: pd.DataFrame,
    analyses: Sequence[CycleAnalysis],
    events: Sequence[HalvingEvent],
    output_dir: Path | None = None,
    cycle: int | None = None,
) -> dict[str, Path]:
    """
    Generate the price chart, cycle comparison chart and HTML report.

    Args:
        prices: Full price series
        analyses: Cycle analysis results
        events: Configured halving events
        output_dir: Directory to save charts (default: CHARTS_DIR)
        cycle: Restrict the price chart to one cycle (default: whole history)

    Returns:
        Dictionary mapping chart name to file path
    """
    if output_dir is None:
        output_dir = CHARTS_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {}

    price_name = "btc_price.html" if cycle is None else f"btc_price_cycle_{cycle}.html"
    price_path = output_dir / price_name
    create_price_chart(prices, events, cycle=cycle, output_path=price_path)
    paths["price"] = price_path

    comparison_path = output_dir / "cycle_comparison.html"
    create_cycle_comparison_chart(prices, analyses, output_path=comparison_path)
    paths["comparison"] = comparison_path

    report_path = output_dir / "cycle_report.html"
    create_cycle_report_html(analyses, report_path)
    paths["report"] = report_path

    logger.debug("Generated %d chart files in %s", len(paths), output_dir)
    return paths
