"""
Data ingestion package for the venue ranking service.

Responsibilities:
- Read raw CSV exports of items, slots, users and preferences.
- Enforce entity invariants (rating and weight ranges, coordinates, dates)
  at the point where data enters the system.
- Persist the processed records as JSON for the retrieval layer.
"""
