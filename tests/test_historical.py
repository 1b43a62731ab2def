from opsreport.historical import (
    HistoricalData, HistoricalSeries, bucket_top_n, default_selected_years, toggle_year,
)


def test_bucket_top_n_folds_tail_into_other(may_report):
    channels = may_report["transactionByChannelData"]
    bucketed = bucket_top_n(channels, 4)

    assert [c["name"] for c in bucketed] == ["TT Song phương (B2B)", "IBFT", "TTHDOL", "SMB", "Khác"]
    assert bucketed[-1] == {"name": "Khác", "value": 10, "color": "#A9A9A9"}
    assert sum(c["value"] for c in bucketed) == sum(c["value"] for c in channels)


def test_bucket_top_n_sorts_by_value():
    channels = [{"name": "A", "value": 1}, {"name": "B", "value": 5}, {"name": "C", "value": 3}]
    assert bucket_top_n(channels, 2) == [
        {"name": "B", "value": 5},
        {"name": "C", "value": 3},
        {"name": "Khác", "value": 1, "color": "#A9A9A9"},
    ]


def test_bucket_top_n_unchanged_when_small():
    channels = [{"name": "A", "value": 60}, {"name": "B", "value": 40}]
    assert bucket_top_n(channels, 2) == channels
    assert bucket_top_n(channels, 5) == channels


def test_bucket_top_n_custom_other_label():
    channels = [{"name": "A", "value": 50}, {"name": "B", "value": 30}, {"name": "C", "value": 20}]
    assert bucket_top_n(channels, 1, other_label="Other")[-1]["name"] == "Other"


def test_default_selected_years():
    years = ["2019", "2020", "2021", "2022", "2023", "2024", "2025"]
    assert default_selected_years(years) == ["2023", "2024", "2025"]
    assert default_selected_years(["2025"]) == ["2025"]


def test_toggle_year():
    assert toggle_year(["2023", "2024", "2025"], "2024") == ["2023", "2025"]
    assert toggle_year(["2023", "2025"], "2021") == ["2021", "2023", "2025"]


def test_toggle_year_keeps_last_selection():
    assert toggle_year(["2025"], "2025") == ["2025"]


def test_historical_series_values(historical_path):
    data = HistoricalData.load(historical_path)
    series = data.get("totalTransactions")

    assert series.years == ["2023", "2024", "2025"]
    assert series.value(5, "2025") == 403585961.0
    assert series.value(6, 2025) is None
    assert series.value(1, "2019") is None
    assert list(series.to_frame(["2024", "2025"]).columns) == ["2024", "2025"]
    assert len(data.daily_overview) == 5


def test_historical_series_from_records():
    series = HistoricalSeries("customers", [{"month": "T1", 2024: 10, 2025: 12}])
    assert series.years == ["2024", "2025"]
    assert series.value(1, 2025) == 12.0
