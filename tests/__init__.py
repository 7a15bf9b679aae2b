"""
Diploma Registry Test Suite
===========================

Test organization:
- tests/unit/              - Store, registry, signer and logging units (no network)
- tests/services/diploma/  - Workflow and HTTP API against the mocks

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=shared            # With coverage
"""
