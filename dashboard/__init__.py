"""NICU dashboard: Flask JSON API over shift tasks and discharge readiness."""
