"""Budgeted ingestion run: scheduling, persistence and coordination."""
