"""Tests - Test suite and shared circuit fixtures."""
