"""
Venue recommendation engine.

Responsibilities:
- Load users and bookable items from the processed data store.
- Score every candidate item on preference, popularity, rating,
  location and availability for the searched date.
- Rank candidates by weighted score and return the top results ready
  for API serialisation.
"""
