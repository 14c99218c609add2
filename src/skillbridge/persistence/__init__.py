"""Persistence — JSON state snapshots and the append-only activity log."""
