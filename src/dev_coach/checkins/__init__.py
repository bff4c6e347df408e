"""
Check-in subsystem.

Components:
- checkin_models.py: data structures (Checkin, CheckinStatus)
- checkin_store.py: SQLite-backed storage, UTC on disk, local time outward
- checkin_scheduler.py: asyncio coordinator arming one timer per scheduled check-in
- checkin_api.py: (message, error) helpers used by the CLI layer
"""
