"""Bounded recurrence expansion for authoring repeated events."""
