"""Repositories for the record service."""
