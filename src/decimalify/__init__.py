"""Rewrites JavaScript floating point arithmetic into calls on an arbitrary precision decimal type."""
