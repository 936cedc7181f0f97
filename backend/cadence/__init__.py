"""Cadence task series backend."""
