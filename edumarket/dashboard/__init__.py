"""Educator dashboard module."""
