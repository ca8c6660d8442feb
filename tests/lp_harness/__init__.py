"""Harness tests."""
