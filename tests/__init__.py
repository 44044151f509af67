"""
Test Package

Contains unit tests for all modules.
Run with: pytest tests/ -v

Test files follow the pattern:
    test_<module_name>.py

Example:
    tests/test_harmony.py     - Tests for walkbass/rules/harmony.py
    tests/test_store.py       - Tests for walkbass/db/store.py

Shared phrase and session builders live in tests/builders.py.
"""
