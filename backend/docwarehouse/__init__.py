"""Repository documentation warehouse: scheduler, planner and generator."""
