"""Tests for run persistence."""
