"""Calculation engine and its collaborators."""
