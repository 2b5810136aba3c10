"""Time-slot booking: slot configuration, available slots, booking creation and management."""

__version__ = "0.1.0"