"""FastAPI server for the walk-in queue."""
