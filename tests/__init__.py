"""Test suite for eventproc."""
