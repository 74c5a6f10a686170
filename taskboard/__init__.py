"""Task board API: bearer-token auth and owner-scoped task CRUD."""

__version__ = "1.0.0"
