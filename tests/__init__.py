"""
Test suite for jot-sync.

This package contains:
- Unit tests for the detectors, merger and renderers
- I/O and locking tests against temporary directories
- Integration tests running full sync passes over a notes tree
"""
