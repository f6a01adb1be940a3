"""Shared pytest fixtures for the integration suites."""
