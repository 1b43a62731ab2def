import pytest

from opsreport.store import (
    InvalidMonthKeyError, ReportStore, latest_month, parse_month_key, sort_month_keys,
)


def test_sort_month_keys_is_chronological_newest_first():
    keys = ["03/2024", "12/2024", "01/2025", "11/2024"]
    assert sort_month_keys(keys) == ["01/2025", "12/2024", "11/2024", "03/2024"]


def test_latest_month():
    assert latest_month({"04/2025": {}, "05/2025": {}, "12/2024": {}}) == "05/2025"
    assert latest_month({}) == ""


@pytest.mark.parametrize("key", ["5/2025", "2025/05", "05-2025", "13/2025", "00/2025", "", None])
def test_invalid_month_keys(key):
    with pytest.raises(InvalidMonthKeyError):
        parse_month_key(key)


def test_invalid_month_key_is_value_error():
    assert issubclass(InvalidMonthKeyError, ValueError)


def test_previous_month_crosses_year_boundary():
    store = ReportStore({"12/2024": {"id": "dec"}, "01/2025": {"id": "jan"}, "02/2025": {"id": "feb"}})
    assert store.previous_month("01/2025") == "12/2024"
    assert store.previous_month("02/2025") == "01/2025"
    assert store.previous_month("12/2024") is None
    assert store.previous_report("01/2025") == {"id": "dec"}


def test_previous_month_skips_gaps():
    store = ReportStore({"01/2025": {}, "05/2025": {}})
    assert store.previous_month("05/2025") == "01/2025"


def test_get_falls_back_to_first_report():
    store = ReportStore({"05/2025": {"id": "may"}, "04/2025": {"id": "apr"}})
    assert store.get("04/2025") == {"id": "apr"}
    assert store.get("09/2030") == {"id": "may"}
    assert ReportStore().get("05/2025") is None


def test_add_merges_and_replaces():
    store = ReportStore({"05/2025": {"id": "old"}})
    assert store.add("06/2025", {"id": "june"}) == "06/2025"
    store.add("05/2025", {"id": "new"})

    assert store.months() == ["06/2025", "05/2025"]
    assert store.get("05/2025") == {"id": "new"}
    assert store.latest_month() == "06/2025"


def test_add_rejects_bad_month():
    store = ReportStore()
    with pytest.raises(InvalidMonthKeyError):
        store.add("2025-06", {})
    assert len(store) == 0


def test_save_and_load(tmp_path, may_report):
    path = tmp_path / "store" / "reports.json"
    store = ReportStore({"05/2025": may_report})
    store.add("06/2025", {"nextSteps": "Theo dõi"})
    store.save(path)

    loaded = ReportStore.load(path)
    assert loaded.months() == ["06/2025", "05/2025"]
    assert loaded.get("05/2025") == may_report


def test_load_missing_file_gives_empty_store(tmp_path):
    store = ReportStore.load(tmp_path / "missing.json")
    assert len(store) == 0
    assert store.latest_month() == ""
