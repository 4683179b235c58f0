"""Unit tests for the typewatch core."""
