"""
Utility functions module.

Time Semantics:
- All timestamps are timezone-aware UTC datetimes
- Contract deadlines and arrival times come from collaborators and are authoritative
- Deadline checks use wall-clock time; elapsed-time reporting uses a monotonic clock
"""
