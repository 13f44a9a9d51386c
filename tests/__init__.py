"""Mortgage CRM Test Suite.

Test organization mirrors the mortgage_crm package:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── test_cli.py          # Command-line entry point
    ├── test_core/           # Config, logging, exceptions
    ├── test_db/             # Models, serialization, storage, backup
    ├── test_engine/         # Reminders, stages, needs, store, export
    └── test_content/        # Daily brief

Markers:
    - @pytest.mark.slow: Tests taking > 1 second
    - @pytest.mark.database: Tests requiring database
"""
