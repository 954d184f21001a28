"""Service layer for scheduling, intake recording and sync."""
