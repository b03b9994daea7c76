"""Scan session package."""

from .aggregator import ScanSession, SubmitOutcome, SubmitStatus
from .summary import summarize, summarize_records

__all__ = ["ScanSession", "SubmitOutcome", "SubmitStatus", "summarize", "summarize_records"]
