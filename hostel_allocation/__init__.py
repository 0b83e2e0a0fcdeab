"""Hostel allocation engine: application windows, bed inventory and allocation."""

__version__ = "1.0.0"
