"""Subprocess helpers."""
