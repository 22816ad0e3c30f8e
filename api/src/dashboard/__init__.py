"""Dashboards and reports derived from the enrollment ledger."""

from .aggregations import summarize_progress


__all__ = ["summarize_progress"]
