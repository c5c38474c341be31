"""Institution identity helpers.

Free-text institution names drift over time (facility renames, stray
whitespace, inconsistent casing). This package resolves every known variant
to one canonical key so reports filed under old and new names land in the
same aggregation bucket.
"""
