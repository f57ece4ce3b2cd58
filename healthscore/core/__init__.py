"""Scoring core: ingestion, scoring engine and report exports."""
