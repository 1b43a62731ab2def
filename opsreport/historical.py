import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import pandas as pd

OTHER_LABEL = "Khác"
OTHER_COLOR = "#A9A9A9"


class HistoricalSeries:
    """
    A month x year table such as total transactions or total customers.

    Rows are labelled ``T1`` .. ``T12``; columns are years as strings.
    Missing months (the future, or before tracking started) are NaN.
    """
    def __init__(self, name: str, records: List[Dict[str, Any]]):
        self.name = name
        self.frame = pd.DataFrame(records).set_index('month')
        self.frame.columns = [str(c) for c in self.frame.columns]

    def __repr__(self):
        return f"HistoricalSeries(name='{self.name}', years={self.years})"

    @property
    def years(self) -> List[str]:
        return sorted(self.frame.columns)

    def value(self, month: int, year: Union[int, str]) -> Optional[float]:
        label, year = f"T{int(month)}", str(year)
        if label not in self.frame.index or year not in self.frame.columns:
            return None
        value = self.frame.at[label, year]
        return None if pd.isna(value) else float(value)

    def to_frame(self, selected_years: Optional[List[str]] = None) -> pd.DataFrame:
        years = [y for y in (selected_years or self.years) if y in self.frame.columns]
        return self.frame[years].copy()


class HistoricalData:
    """All historical series shown on the dashboard, loaded from one JSON file."""
    def __init__(self, series: Dict[str, HistoricalSeries], daily_overview: pd.DataFrame):
        self.series = series
        self.daily_overview = daily_overview

    @classmethod
    def load(cls, path: Path) -> "HistoricalData":
        with Path(path).open('r', encoding='utf-8') as f:
            data = json.load(f)
        series = {name: HistoricalSeries(name, records) for name, records in data.get('series', {}).items()}
        daily = pd.DataFrame(data.get('avgDailyTransactions', []))
        logging.getLogger(__name__).debug(f"Loaded {len(series)} historical series from {path}")
        return cls(series, daily)

    def get(self, name: str) -> Optional[HistoricalSeries]:
        return self.series.get(name)


def default_selected_years(years: List[str], n: int = 3) -> List[str]:
    return sorted(years)[-n:]


def toggle_year(selected: List[str], year: str) -> List[str]:
    """Adds or removes ``year`` from the selection; the last selected year cannot be removed."""
    if year in selected:
        if len(selected) == 1:
            return list(selected)
        return [y for y in selected if y != year]
    return sorted(list(selected) + [year])


def bucket_top_n(channels: List[Dict[str, Any]], n: int, other_label: str = OTHER_LABEL) -> List[Dict[str, Any]]:
    """
    Keeps the ``n`` largest channels and folds the rest into a single
    "other" slice. Any existing "other" entry is merged into that slice.
    """
    if len(channels) <= n:
        return list(channels)

    existing_other = [c for c in channels if c.get('name') == other_label]
    named = sorted((c for c in channels if c.get('name') != other_label),
                   key=lambda c: c.get('value') or 0, reverse=True)

    top, rest = named[:n], named[n:]
    other_total = sum((c.get('value') or 0) for c in rest + existing_other)
    if not rest and not existing_other:
        return top

    color = existing_other[0].get('color', OTHER_COLOR) if existing_other else OTHER_COLOR
    return top + [{'name': other_label, 'value': other_total, 'color': color}]
