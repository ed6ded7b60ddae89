"""Authenticated personal task API."""
