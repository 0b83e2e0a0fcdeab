"""Test suite for the hostel allocation engine."""
