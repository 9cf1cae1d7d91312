"""Route group exports."""

from . import districts, health, users

__all__ = ["districts", "health", "users"]
