"""Helpers shared by the scripts in scripts/."""
