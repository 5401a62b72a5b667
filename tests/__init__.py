"""Warden test suite."""
