# backend/airlinedb/jobs/__init__.py
"""Cron entry points. Run with `python -m airlinedb.jobs.<name>`."""
