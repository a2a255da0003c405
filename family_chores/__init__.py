"""Family chores API: chore lifecycle, recurring templates and rotations per family."""
__version__ = "0.1.0"
