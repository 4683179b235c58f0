"""Test definition collector adapters."""
