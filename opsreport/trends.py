"""
Month-over-month and year-over-year trend computation for report KPIs.

KPI values arrive either as numbers (``rawValue``, ``rawMinutes``) or as the
display strings printed in the report (``"5.04ms"``, ``"2h 49m"``,
``"~17.2M"``). ``parse_value`` turns both into floats so trends can be
computed the same way for every KPI.
"""

import math
import re
from typing import Dict, Any, Optional, Union

Number = Union[int, float]

# KPI -> field holding its comparable value.
KPI_TREND_FIELDS = {
    "totalFinancialTransactions": "rawValue",
    "peakDayTransactions": "rawValue",
    "avgDayEndDuration": "rawMinutes",
    "avgResponseTime": "value",
    "peakTPS": "value",
    "avgCPUUtilization": "rawPercentage",
}

# An increase in these KPIs is bad news.
LOWER_IS_BETTER = {"avgDayEndDuration", "avgResponseTime", "avgCPUUtilization"}

_DURATION_RE = re.compile(r'(\d+)\s*h(?:\s*(\d+)\s*m)?', re.IGNORECASE)
_MILLIONS_RE = re.compile(r'(-?[\d.,]+)\s*M\b')
_DECIMAL_COMMA_RE = re.compile(r'^-?\d+,\d{1,2}$')


def parse_value(value: Any) -> float:
    """Converts a KPI value to a float, returning NaN when it cannot be read."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return math.nan

    text = value.strip()
    duration = _DURATION_RE.search(text)
    if duration:
        hours = int(duration.group(1))
        minutes = int(duration.group(2) or 0)
        return float(hours * 60 + minutes)

    millions = _MILLIONS_RE.search(text)
    if millions:
        number = millions.group(1)
        # "403,5M" uses a decimal comma, "1,234M" a thousands separator.
        if _DECIMAL_COMMA_RE.match(number):
            number = number.replace(',', '.')
        else:
            number = number.replace(',', '')
        try:
            return float(number) * 1_000_000
        except ValueError:
            return math.nan

    cleaned = re.sub(r'[^0-9.\-]+', '', text.replace(',', ''))
    try:
        return float(cleaned)
    except ValueError:
        return math.nan


def calculate_trend(current_value: Any, previous_value: Any) -> Optional[str]:
    """Percentage change from ``previous_value`` to ``current_value``, e.g. ``"+4.79%"``."""
    current = parse_value(current_value)
    previous = parse_value(previous_value)
    if math.isnan(current) or math.isnan(previous) or previous == 0:
        return None
    percentage = (current - previous) / previous * 100
    return f"{'+' if percentage > 0 else ''}{percentage:.2f}%"


def compute_kpi_trends(current_report: Optional[Dict[str, Any]],
                       previous_report: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """Month-over-month trend of every KPI; empty when there is no previous report."""
    if not current_report or not previous_report:
        return {}

    current_kpis = current_report.get('kpiData') or {}
    previous_kpis = previous_report.get('kpiData') or {}
    trends = {}
    for kpi, field in KPI_TREND_FIELDS.items():
        current = (current_kpis.get(kpi) or {}).get(field)
        previous = (previous_kpis.get(kpi) or {}).get(field)
        trends[kpi] = calculate_trend(current, previous)
    return trends


def year_over_year(series, month: int, year: Union[int, str]) -> Optional[str]:
    """Growth of ``month``/``year`` against the same month one year earlier in a historical series."""
    previous_year = str(int(year) - 1)
    return calculate_trend(series.value(month, str(year)), series.value(month, previous_year))


def format_millions(value: Optional[Number]) -> str:
    if not value:
        return "N/A"
    return f"{value / 1_000_000:.2f}M"


def trend_direction(trend: Optional[str]) -> str:
    value = parse_value(trend) if trend else math.nan
    if math.isnan(value) or value == 0:
        return "flat"
    return "up" if value > 0 else "down"


def is_favourable(kpi: str, trend: Optional[str]) -> Optional[bool]:
    """Whether a KPI trend is good news; None when the trend is flat or unknown."""
    direction = trend_direction(trend)
    if direction == "flat":
        return None
    if kpi in LOWER_IS_BETTER:
        return direction == "down"
    return direction == "up"
