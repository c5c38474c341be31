"""Fiscal-year aggregation.

Turns the per-month report documents of the Report Store into cumulative
answer vectors: the fiscal window (April through the selected month), the
latest-snapshot reduction that defends against duplicate documents, the
84-slot summation, and the tiered fallbacks used when the store is down.
"""
