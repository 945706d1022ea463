"""Courier business modules."""
