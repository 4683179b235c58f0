"""Checker process adapters."""
