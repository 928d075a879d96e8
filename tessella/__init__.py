"""Tessella: a tile-map editor core with rule-based automapping."""
