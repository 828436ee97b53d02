"""planchat - turn Korean chat utterances into schedules and tasks."""

__version__ = "0.1.0"
