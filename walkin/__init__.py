"""Walk-in queue service: live queue count, broadcast hub and client sync agent."""

__version__ = "1.0.0"
