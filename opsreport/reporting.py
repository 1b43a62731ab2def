import logging
import csv
import json
import time
from pathlib import Path
from typing import List, Dict, Any, Optional

import pandas as pd

from .historical import HistoricalData, bucket_top_n, default_selected_years
from .trends import KPI_TREND_FIELDS, is_favourable

INCIDENT_FIELDS = ["date", "description", "resolutionTime", "impact", "cause", "prevention"]


def export_stem(month: str) -> str:
    return f"bao_cao_core_banking_{month.replace('/', '_')}"


def kpi_rows(report: Dict[str, Any], trends: Dict[str, Optional[str]]) -> List[Dict[str, Any]]:
    """One flat row per KPI, in display order."""
    kpis = report.get('kpiData') or {}
    rows = []
    for kpi in KPI_TREND_FIELDS:
        data = kpis.get(kpi) or {}
        trend = trends.get(kpi)
        rows.append({
            "kpi": kpi,
            "description": data.get('description'),
            "value": data.get('value'),
            "date": data.get('date'),
            "year_over_year": data.get('yearOverYear'),
            "mom_trend": trend,
            "favourable": is_favourable(kpi, trend),
        })
    return rows


class DashboardExporter:
    """
    Writes the dashboard for one month as JSON, CSV and a multi-sheet Excel workbook.
    """
    def __init__(self, config: Dict[str, Any], output_directory: Path):
        """
        Args:
            config: The configuration dictionary from config.yaml.
            output_directory: Where export files are written.
        """
        self.config = config.get('reporting', {})
        self.output_directory = Path(output_directory)
        self.logger = logging.getLogger(__name__)
        self.output_directory.mkdir(parents=True, exist_ok=True)

    def export_all(self, month: str, report: Dict[str, Any], trends: Dict[str, Optional[str]],
                   historical: Optional[HistoricalData] = None) -> List[Path]:
        self.logger.info(f"Exporting dashboard for {month} to: {self.output_directory}")
        paths = [
            self.export_json(month, report, trends),
            self.export_csv(month, report, trends),
            self.export_excel(month, report, trends, historical),
        ]
        self.logger.info("Successfully exported dashboard.")
        return paths

    def export_json(self, month: str, report: Dict[str, Any], trends: Dict[str, Optional[str]]) -> Path:
        json_path = self.output_directory / f"{export_stem(month)}.json"
        output_data = {"month": month, "report": report, "kpi_trends": trends}
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, ensure_ascii=False, indent=2)
        self.logger.info(f"Wrote JSON export: {json_path}")
        return json_path

    def export_csv(self, month: str, report: Dict[str, Any], trends: Dict[str, Optional[str]]) -> Path:
        csv_path = self.output_directory / f"{export_stem(month)}_kpi.csv"
        rows = kpi_rows(report, trends)
        with open(csv_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
            writer.writeheader()
            writer.writerows(rows)
        self.logger.info(f"Wrote KPI summary: {csv_path}")
        return csv_path

    def export_excel(self, month: str, report: Dict[str, Any], trends: Dict[str, Optional[str]],
                     historical: Optional[HistoricalData] = None) -> Path:
        """Creates a multi-sheet Excel dashboard for the month."""
        xlsx_path = self.output_directory / f"{export_stem(month)}.xlsx"
        self.logger.info(f"Creating Excel dashboard at: {xlsx_path}")

        with pd.ExcelWriter(xlsx_path, engine='openpyxl') as writer:
            # Sheet 1: KPI summary
            pd.DataFrame([[f"Báo cáo hoạt động Core Banking - Tháng {month}"]]).to_excel(
                writer, sheet_name='Summary', index=False, header=False, startrow=0)
            pd.DataFrame(kpi_rows(report, trends)).to_excel(writer, sheet_name='Summary', index=False, startrow=2)
            worksheet = writer.sheets['Summary']
            worksheet.column_dimensions['A'].width = 30; worksheet.column_dimensions['B'].width = 35; worksheet.column_dimensions['C'].width = 15

            # Sheet 2: Channel shares
            channels = report.get('transactionByChannelData') or []
            if channels:
                top_n = self.config.get('top_n_channels', 6)
                pd.DataFrame(bucket_top_n(channels, top_n)).to_excel(writer, sheet_name='Channels', index=False)
                writer.sheets['Channels'].column_dimensions['A'].width = 30

            # Sheet 3: Customer & account growth
            growth = report.get('growthMetrics') or []
            if growth:
                pd.DataFrame(growth).to_excel(writer, sheet_name='Growth', index=False)
                writer.sheets['Growth'].column_dimensions['A'].width = 30

            # Sheet 4: Incidents
            errors = report.get('errorDetails') or {}
            incident = errors.get('webCSRError') or {}
            incident_rows = [{"Field": "status", "Value": errors.get('status')}]
            incident_rows += [{"Field": field, "Value": incident.get(field)} for field in INCIDENT_FIELDS]
            pd.DataFrame(incident_rows).to_excel(writer, sheet_name='Incidents', index=False)
            worksheet = writer.sheets['Incidents']
            worksheet.column_dimensions['A'].width = 20; worksheet.column_dimensions['B'].width = 80

            # Sheet 5: System updates and next steps
            updates = dict(report.get('systemUpdateData') or {})
            updates['nextSteps'] = report.get('nextSteps')
            pd.DataFrame(list(updates.items()), columns=["Item", "Value"]).to_excel(
                writer, sheet_name='System Updates', index=False)
            worksheet = writer.sheets['System Updates']
            worksheet.column_dimensions['A'].width = 25; worksheet.column_dimensions['B'].width = 60

            # Sheet 6: Historical series
            if historical:
                self._write_historical(writer, historical)

        self.logger.info("Excel dashboard created successfully.")
        return xlsx_path

    def _write_historical(self, writer: pd.ExcelWriter, historical: HistoricalData):
        startrow = 0
        for name, series in historical.series.items():
            selected = self.config.get('selected_years') or default_selected_years(series.years)
            pd.DataFrame([[name]]).to_excel(writer, sheet_name='Historical', index=False, header=False, startrow=startrow)
            frame = series.to_frame(selected)
            frame.to_excel(writer, sheet_name='Historical', startrow=startrow + 1)
            startrow += len(frame) + 4
        if not historical.daily_overview.empty:
            historical.daily_overview.to_excel(writer, sheet_name='Daily Overview', index=False)

    def save_optimized_text(self, text: str) -> Path:
        """Saves the trimmed report text for review before it is sent to the LLM."""
        path = self.output_directory / f"optimized_report_{int(time.time() * 1000)}.txt"
        path.write_text(text, encoding='utf-8')
        self.logger.info(f"Saved optimized content to {path}")
        return path
