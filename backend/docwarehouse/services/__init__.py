"""Business logic: scheduling, planning, generation and their helpers."""
