"""
Core modules for Usage Insights.

This package contains CSV validation and parsing, summary aggregation,
statistics, date handling and ingestion.
"""
