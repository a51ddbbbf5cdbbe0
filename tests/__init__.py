"""Tests for the CCPI engine."""
