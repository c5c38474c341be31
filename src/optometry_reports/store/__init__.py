"""Report Store implementations.

The aggregation engine only depends on the `ReportStore` protocol; the
MongoDB store is authoritative, the in-memory store holds locally cached
documents for the local-fallback tier.
"""

from optometry_reports.store.base import ReportQuery, ReportStore
from optometry_reports.store.memory import InMemoryReportStore
from optometry_reports.store.mongo import MongoReportStore

__all__ = ["ReportQuery", "ReportStore", "InMemoryReportStore", "MongoReportStore"]
