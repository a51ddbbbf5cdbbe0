"""Tests for indicator sources."""
