"""Checker configuration adapters."""
