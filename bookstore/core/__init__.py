"""Core Layer - pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (backoff jitter takes its RNG as input)

Design Decisions:
    - Functional core separated from imperative shell: money rules and retry
      classification are testable without a database
"""
