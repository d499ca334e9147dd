"""Tests for core infrastructure (services, exceptions, model mixins)."""
