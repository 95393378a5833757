"""Test suite for the query guard and resilient cache."""
