"""
dashboardr Test Suite

This package contains unit tests for the chart data pipeline stages, the
chart functions on every backend, the incremental build manifest, and
shared fixtures.

Run tests with:
    pytest tests/
    pytest tests/test_aggregator.py -v
    pytest tests/test_aggregator.py::TestFiveNumberSummary -v
"""
