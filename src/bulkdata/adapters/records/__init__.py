"""Bulk record sources."""

from __future__ import annotations

from .reader import RecordReader, detect_format, open_records, read_head

__all__ = ["RecordReader", "detect_format", "open_records", "read_head"]
