"""typewatch: type checker diagnostics reported as test results.

Runs tsc (or vue-tsc), correlates each diagnostic with the test or suite
definition it falls inside and publishes incremental, watch-aware
snapshots of the results.
"""

__version__ = "0.1.0"
