"""Test suite for typewatch.

Organized into three categories:

1. core/: Unit tests for parsing, positions, result building and the
   session controller, using in-memory fakes for ports

2. adapters/: Tests for adapter implementations against the real
   filesystem and real subprocesses

3. fakes/: Port implementations for testing
"""
