"""
Test suite for the sales import service.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_batch_importer.py -v
"""
