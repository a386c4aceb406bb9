"""
Maestro Test Suite
==================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/          → Tests for maestro.core (config, models, events)
    ├── test_orchestration/ → Tests for maestro.orchestration (registry, bus, engine)
    ├── test_integrations/  → Tests for maestro.integrations (invoker, probe)
    ├── test_integration/   → End-to-end integration tests
    ├── test_facade.py      → Tests for the Maestro facade
    └── conftest.py         → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_core/         # Run only core tests
    pytest --cov=maestro            # Run with coverage report
"""
