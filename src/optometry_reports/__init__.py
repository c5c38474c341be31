"""optometry_reports package.

Monthly statistical reporting for the ophthalmology program: institution
reports are stored in MongoDB and rolled up into fiscal-year cumulative
totals per institution and per district.

Architecture:
- Reports (one per district, institution, month, year) live in MongoDB
- Institution names are canonicalized through an explicit alias table
- Fiscal-year (April to March) cumulative totals are summed over the latest
  snapshot per month, with tagged fallback tiers when the store is down
- Pydantic models validate submissions and shape aggregation results
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
