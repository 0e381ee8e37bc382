"""Logging and metrics for stackplan."""
