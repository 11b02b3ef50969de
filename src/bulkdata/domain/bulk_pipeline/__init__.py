"""Bulk analysis and load pipeline."""

from __future__ import annotations

from .aggregator import ResolutionInfoAggregator
from .analyzer import ANALYSIS_CANCELLED, BulkAnalyzer
from .classifier import (
    CodeMapping,
    RecordClassification,
    RecordClassifier,
    classify_attribute,
)
from .errors import INCOMPLETE_RECORD, MALFORMED_RECORD, UNKNOWN_DATA_SOURCE, LoadErrorTracker
from .load_ids import make_load_id
from .loader import BulkLoader
from .registry import LoadRegistry
from .tracker import LoadStateError, LoadStatusTracker, RecordOutcome

__all__ = [
    "ANALYSIS_CANCELLED",
    "INCOMPLETE_RECORD",
    "MALFORMED_RECORD",
    "UNKNOWN_DATA_SOURCE",
    "BulkAnalyzer",
    "BulkLoader",
    "CodeMapping",
    "LoadErrorTracker",
    "LoadRegistry",
    "LoadStateError",
    "LoadStatusTracker",
    "RecordClassification",
    "RecordClassifier",
    "RecordOutcome",
    "ResolutionInfoAggregator",
    "classify_attribute",
    "make_load_id",
]
