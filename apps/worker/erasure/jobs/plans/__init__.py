"""Deletion plans, one module per target type."""
