# File: rate_agents/render_agent.py
"""
render_agent.py – line charts + plain-text summaries for every store.

Output
──────
output/
  ├─ rates.png / rates.txt        live store (current month)
  └─ YYYY-MM.png / YYYY-MM.txt    one pair per archive
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.dates as mdates  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from matplotlib.ticker import FuncFormatter  # noqa: E402

from rate_agents.config import configure_logging, load_settings  # noqa: E402
from rate_agents.errors import RateTrackerError  # noqa: E402
from rate_agents.record import RateRecord, format_timestamp  # noqa: E402
from rate_agents.store_agent import CURRENT, StoreLocator, load  # noqa: E402

LINE_COLOR = "#2563eb"


@dataclass
class RenderReport:
    rendered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def month_label(key: str) -> str:
    """'2025-07' → 'July 2025'."""
    return datetime.strptime(key, "%Y-%m").strftime("%B %Y")


def chart_title(ccy: str, store: str) -> str:
    suffix = "Current Month" if store == CURRENT else month_label(store)
    return f"OKX {ccy} Lending Rate - {suffix}"


def to_frame(records: list[RateRecord]) -> pd.DataFrame:
    """Rates in percent, timestamps floored to the hour, sorted."""
    df = pd.DataFrame({
        "date": pd.to_datetime([r.timestamp for r in records], utc=True),
        "rate": [r.rate * 100 for r in records],
    })
    df["date"] = df["date"].dt.floor("h").dt.tz_convert(None)
    return df.sort_values("date", kind="stable").reset_index(drop=True)


def summarize(records: list[RateRecord], title: str) -> str:
    if not records:
        return f"{title}\nNo data points.\n"

    df = to_frame(records)
    first, last = records[0], records[-1]
    lines = [
        title,
        f"Data points : {len(records)}",
        f"From        : {format_timestamp(first.timestamp)}",
        f"To          : {format_timestamp(last.timestamp)}",
        f"Latest rate : {last.rate * 100:.2f}%",
        f"Min / Max   : {df['rate'].min():.2f}% / {df['rate'].max():.2f}%",
        f"Mean        : {df['rate'].mean():.2f}%",
    ]
    return "\n".join(lines) + "\n"


def render_store(records: list[RateRecord], title: str, out_path: Path) -> Path:
    if not records:
        raise ValueError("No valid data found for chart generation")

    df = to_frame(records)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(8, 4), dpi=150)
    try:
        ax.plot(df["date"], df["rate"], color=LINE_COLOR, linewidth=2, marker="o", markersize=3)
        ax.set_title(title, fontweight="bold")
        ax.set_xlabel("Time (UTC)")
        ax.set_ylabel("Pre Rate (%)")
        ax.yaxis.set_major_formatter(FuncFormatter(lambda y, _: f"{y:.2f}%"))
        ax.xaxis.set_major_formatter(mdates.DateFormatter("%m/%d %H:%M"))
        ax.grid(True, linestyle=":", alpha=0.3)
        fig.autofmt_xdate()
        fig.tight_layout()
        fig.savefig(out_path)
    finally:
        plt.close(fig)

    logging.info("Chart saved to %s (%d points)", out_path, len(df))
    return out_path


def render_one(locator: StoreLocator, store: str, output_dir: Path, ccy: str) -> bool:
    """Chart + summary for one store; False when the store is empty."""
    records = load(locator.path(store))
    if not records:
        logging.info("No data found for %s", store)
        return False

    name = "rates" if store == CURRENT else store
    title = chart_title(ccy, store)
    render_store(records, title, output_dir / f"{name}.png")
    (output_dir / f"{name}.txt").write_text(summarize(records, title), encoding="utf-8")
    return True


def render_all(locator: StoreLocator, output_dir: Path, ccy: str = "USDT") -> RenderReport:
    """
    Current month first, then every archive. One broken archive is logged
    and recorded in the report; the rest still render.
    """
    report = RenderReport()
    stores = [CURRENT, *locator.archive_keys()]
    logging.info("Generating charts for %d stores", len(stores))

    for store in stores:
        try:
            done = render_one(locator, store, output_dir, ccy)
        except (RateTrackerError, OSError, ValueError) as e:
            report.failed[store] = str(e)
            logging.error("Error processing %s: %s", store, e)
            continue
        (report.rendered if done else report.skipped).append(store)

    logging.info("Chart generation completed")
    return report


def main() -> None:
    settings = load_settings()
    configure_logging("render", settings.log_dir)
    report = render_all(StoreLocator(settings.data_dir), settings.output_dir, settings.ccy)

    for store in report.rendered:
        print(f"[OK]   {store}")
    for store in report.skipped:
        print(f"[SKIP] {store}: no data")
    for store, err in report.failed.items():
        print(f"[FAIL] {store}: {err}", file=sys.stderr)
    if report.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
