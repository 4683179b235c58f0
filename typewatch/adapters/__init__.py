"""External adapters for typewatch.

This package contains everything that touches the outside world and
provides implementations of the core port interfaces.

Adapter Organization:

- process/: Spawning and streaming the checker process
- config/: Temporary checker configuration files
- collector/: Test definition collection
- reporting/: Presenting published snapshots
"""
