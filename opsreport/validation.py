import logging
from typing import Dict, Any, List

from .trends import KPI_TREND_FIELDS

REQUIRED_SECTIONS = ["kpiData", "transactionByChannelData", "growthMetrics",
                     "errorDetails", "systemUpdateData", "nextSteps"]

NUMERIC_KPI_FIELDS = {
    "totalFinancialTransactions": "rawValue",
    "peakDayTransactions": "rawValue",
    "avgDayEndDuration": "rawMinutes",
    "avgCPUUtilization": "rawPercentage",
}

SECTION_TYPES = {
    "kpiData": dict,
    "transactionByChannelData": list,
    "growthMetrics": list,
    "errorDetails": dict,
    "systemUpdateData": dict,
    "nextSteps": str,
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ReportValidator:
    """
    Validates the structure of a monthly report, typically one returned by the LLM.
    """
    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: The configuration dictionary from config.yaml.
        """
        self.config = config.get('validation', {})
        self.logger = logging.getLogger(__name__)

    def validate(self, report: Dict[str, Any]) -> Dict[str, Any]:
        errors: List[str] = []
        warnings: List[str] = []

        for section in REQUIRED_SECTIONS:
            if section not in report or report[section] is None:
                errors.append(f"Missing required section: '{section}'")

        for section, expected in SECTION_TYPES.items():
            value = report.get(section)
            if value is not None and not isinstance(value, expected):
                errors.append(f"Section '{section}' has the wrong type: {type(value).__name__}")

        kpis = report.get('kpiData')
        if not isinstance(kpis, dict):
            kpis = {}
        for kpi in KPI_TREND_FIELDS:
            if kpi not in kpis:
                errors.append(f"Missing KPI: '{kpi}'")
            elif not isinstance(kpis[kpi], dict):
                errors.append(f"KPI '{kpi}' is not an object: {kpis[kpi]}")

        for kpi, field in NUMERIC_KPI_FIELDS.items():
            entry = kpis.get(kpi)
            value = entry.get(field) if isinstance(entry, dict) else None
            if value is not None and not _is_number(value):
                errors.append(f"Field '{kpi}.{field}' is not a valid number: {value}")

        channels = report.get('transactionByChannelData')
        if isinstance(channels, list) and channels:
            total = 0
            for i, channel in enumerate(channels):
                if not isinstance(channel, dict):
                    errors.append(f"Channel #{i + 1} is not an object: {channel}")
                elif _is_number(channel.get('value')):
                    total += channel['value']
            tolerance = self.config.get('channel_share_tolerance', 2)
            if abs(total - 100) > tolerance:
                warnings.append(f"Channel shares sum to {total}, expected 100")

        metrics = report.get('growthMetrics')
        for i, metric in enumerate(metrics if isinstance(metrics, list) else []):
            if not isinstance(metric, dict):
                errors.append(f"Growth metric #{i + 1} is not an object: {metric}")
            elif not metric.get('name'):
                errors.append(f"Growth metric #{i + 1} has no name")

        if errors:
            self.logger.warning(f"Report failed validation with {len(errors)} errors.")
        for warning in warnings:
            self.logger.info(f"Validation warning: {warning}")

        return {
            'is_valid': not errors,
            'errors': errors,
            'warnings': warnings,
        }
