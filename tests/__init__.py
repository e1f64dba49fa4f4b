"""
Kilnbook Test Suite
===================

Test Organization
-----------------
- tests/unit/          : Unit tests over the in-memory store and mocked repositories
- tests/integration/   : PostgreSQL and Redis via testcontainers

Run only the fast suite with ``pytest -m "not integration"``; integration
tests are skipped automatically when Docker is unavailable.
"""
