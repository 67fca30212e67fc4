"""Booking and payment backend for scheduled group classes."""
