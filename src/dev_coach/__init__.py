"""dev-coach: console productivity coach with tasks and scheduled check-ins."""

__version__ = "0.1.0"
