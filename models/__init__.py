"""Data access layer: users, rooms, reservations, fixed assignments and offices."""
