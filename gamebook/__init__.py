"""Lone Wolf gamebook engine."""
