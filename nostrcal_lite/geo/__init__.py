"""Geohash codec and distance helpers."""
