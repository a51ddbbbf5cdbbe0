"""Tests for the CCPI core: registry, resolver, scoring, engine."""
