import logging
import json
import re
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterable, Tuple

MONTH_KEY_RE = re.compile(r'^\d{2}/\d{4}$')


class InvalidMonthKeyError(ValueError):
    """Raised for month keys that are not in MM/YYYY form."""


def parse_month_key(key: str) -> Tuple[int, int]:
    """Returns ``(year, month)`` for a ``MM/YYYY`` key."""
    if not isinstance(key, str) or not MONTH_KEY_RE.match(key):
        raise InvalidMonthKeyError(f"Invalid month key '{key}'. Use the MM/YYYY format.")
    month, year = (int(part) for part in key.split('/'))
    if not 1 <= month <= 12:
        raise InvalidMonthKeyError(f"Invalid month key '{key}'. Month must be between 01 and 12.")
    return year, month


def sort_month_keys(keys: Iterable[str]) -> List[str]:
    """Newest month first."""
    return sorted(keys, key=parse_month_key, reverse=True)


def latest_month(reports: Dict[str, Any]) -> str:
    keys = sort_month_keys(reports.keys())
    return keys[0] if keys else ''


class ReportStore:
    """
    Monthly reports keyed by ``MM/YYYY``.

    Imported reports are merged in memory; ``save`` writes the whole store
    back to a JSON file.
    """
    def __init__(self, reports: Optional[Dict[str, Dict[str, Any]]] = None):
        self.logger = logging.getLogger(__name__)
        self._reports: Dict[str, Dict[str, Any]] = {}
        for month, report in (reports or {}).items():
            parse_month_key(month)
            self._reports[month] = report

    @classmethod
    def load(cls, path: Path) -> "ReportStore":
        path = Path(path)
        if not path.exists():
            logging.getLogger(__name__).warning(f"Report store not found at {path}. Starting empty.")
            return cls()
        with path.open('r', encoding='utf-8') as f:
            return cls(json.load(f))

    def save(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        ordered = {month: self._reports[month] for month in self.months()}
        with path.open('w', encoding='utf-8') as f:
            json.dump(ordered, f, ensure_ascii=False, indent=2)
        self.logger.info(f"Saved {len(ordered)} reports to {path}")

    def __len__(self):
        return len(self._reports)

    def __contains__(self, month):
        return month in self._reports

    def months(self) -> List[str]:
        return sort_month_keys(self._reports.keys())

    def latest_month(self) -> str:
        return latest_month(self._reports)

    def get(self, month: str) -> Optional[Dict[str, Any]]:
        """The report for ``month``, or the first stored report when the month is unknown."""
        if month in self._reports:
            return self._reports[month]
        if self._reports:
            fallback = next(iter(self._reports))
            self.logger.warning(f"No report for {month}. Falling back to {fallback}.")
            return self._reports[fallback]
        return None

    def previous_month(self, month: str) -> Optional[str]:
        """The closest stored month before ``month``."""
        target = parse_month_key(month)
        earlier = [key for key in self._reports if parse_month_key(key) < target]
        return max(earlier, key=parse_month_key) if earlier else None

    def previous_report(self, month: str) -> Optional[Dict[str, Any]]:
        key = self.previous_month(month)
        return self._reports[key] if key else None

    def add(self, month: str, report: Dict[str, Any]) -> str:
        parse_month_key(month)
        if month in self._reports:
            self.logger.info(f"Replacing existing report for {month}.")
        self._reports[month] = report
        self.logger.info(f"Added report for month {month}.")
        return month
