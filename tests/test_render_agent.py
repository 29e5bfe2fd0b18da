from rate_agents.record import RateRecord
from rate_agents.render_agent import chart_title, month_label, render_all, render_store, summarize
from rate_agents.store_agent import StoreLocator, save


def rec(ts, rate):
    return RateRecord.from_strings(ts, str(rate))


def test_month_label_and_title():
    assert month_label("2025-07") == "July 2025"
    assert chart_title("USDT", "current") == "OKX USDT Lending Rate - Current Month"
    assert chart_title("USDT", "2025-06") == "OKX USDT Lending Rate - June 2025"


def test_summarize_reports_stats():
    text = summarize([rec("2025-07-01T00:00:00Z", 0.04), rec("2025-07-01T01:00:00Z", 0.06)], "T")
    assert text.splitlines()[0] == "T"
    assert "Data points : 2" in text
    assert "Latest rate : 6.00%" in text
    assert "Min / Max   : 4.00% / 6.00%" in text
    assert "Mean        : 5.00%" in text


def test_summarize_empty():
    assert "No data points." in summarize([], "T")


def test_render_store_writes_png(tmp_path):
    out = render_store(
        [rec("2025-07-01T00:10:00Z", 0.04), rec("2025-07-01T01:20:00Z", 0.06)],
        "T",
        tmp_path / "charts" / "rates.png",
    )
    assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_render_all_skips_empty_and_reports_corrupt(tmp_path):
    data, output = tmp_path / "data", tmp_path / "output"
    loc = StoreLocator(data)
    save(loc.path(), [])
    save(loc.path("2025-06"), [rec("2025-06-01T00:00:00Z", 0.04), rec("2025-06-01T01:00:00Z", 0.05)])
    loc.path("2025-05").write_text("timestamp,preRate\n2025-05-01T00:00:00Z,NaN\n")

    report = render_all(loc, output)

    assert report.rendered == ["2025-06"]
    assert report.skipped == ["current"]
    assert list(report.failed) == ["2025-05"]
    assert (output / "2025-06.png").exists()
    assert "June 2025" in (output / "2025-06.txt").read_text()
