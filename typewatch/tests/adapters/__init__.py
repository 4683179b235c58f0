"""Tests for typewatch adapters."""
