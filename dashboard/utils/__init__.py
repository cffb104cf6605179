"""Dashboard helpers."""
