"""DevBytes sync: periodically cached, observable video playlist."""

__version__ = "1.0.0"
