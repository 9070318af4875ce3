"""request-logger — per-request metrics log with windowed statistics."""
