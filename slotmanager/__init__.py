"""Slot Manager: phone and IP slot allocation bookkeeping."""

__version__ = "1.0.0"
