"""Domain types, templates and shared helpers for match setup."""
