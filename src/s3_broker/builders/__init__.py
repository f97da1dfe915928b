"""Builders for backend clients and desired resource state."""
