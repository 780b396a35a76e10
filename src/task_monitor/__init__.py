"""Recurring-task occurrence engine and due-date notification monitor."""

__version__ = "0.1.0"
