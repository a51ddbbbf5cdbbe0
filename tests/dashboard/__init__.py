"""Tests for the dashboard API and service."""
