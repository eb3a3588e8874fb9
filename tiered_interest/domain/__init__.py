"""Tier boundaries, tier resolution and the editable tier schedule."""
