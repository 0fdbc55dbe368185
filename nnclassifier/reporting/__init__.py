"""Reporting utilities for training runs."""

from .artifacts import describe_model, write_manifest
from .metrics import CsvSink, JsonlSink
from .summary import summarize_history, write_summary

__all__ = [
    "CsvSink",
    "JsonlSink",
    "describe_model",
    "summarize_history",
    "write_manifest",
    "write_summary",
]
