"""Rank Roller game backend."""
