"""Shared utilities for org_resolver (hashing, sanitization, stats, logging)."""
