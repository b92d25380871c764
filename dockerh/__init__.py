"""Helpers for running Docker containers and common services in integration tests."""

__version__ = "0.1.0"

__all__ = ["docker", "services"]