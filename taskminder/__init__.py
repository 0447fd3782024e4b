"""Personal task tracker with day-before email reminders."""

__version__ = "0.1.0"
