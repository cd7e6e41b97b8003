"""Booking, contact and notification API for a local cleaning service."""
