"""Shared low-level helpers for nostrcal_lite."""
