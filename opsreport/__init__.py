"""Core Banking monthly operations report: KPI trends and AI-assisted report import."""

__version__ = "1.0.0"
