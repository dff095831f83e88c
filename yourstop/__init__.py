"""YourStop - restaurant discovery, availability, booking and review aggregation."""

__version__ = "0.1.0"
