import copy
import json
from pathlib import Path

import pytest

SAMPLE_DATA = Path(__file__).resolve().parent.parent / "sample-data"


@pytest.fixture(scope="session")
def sample_reports():
    with (SAMPLE_DATA / "reports.json").open(encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def may_report(sample_reports):
    return copy.deepcopy(sample_reports["05/2025"])


@pytest.fixture
def april_report(sample_reports):
    return copy.deepcopy(sample_reports["04/2025"])


@pytest.fixture
def historical_path():
    return SAMPLE_DATA / "historical.json"
