"""Destructive delete job worker: tenant wipes and user deletion."""
