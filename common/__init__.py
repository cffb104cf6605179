"""Shared NICU packages used across the task and readiness projects."""
