"""Services Layer - stores, session resolution, authentication, and the purchase engine.

Invariants:
    - Stores never commit; the engine or auth service owns each transaction
    - Routes call services, never the ORM directly

Design Decisions:
    - One file per store/service for locality
"""
