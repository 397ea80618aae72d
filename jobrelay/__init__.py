"""jobrelay - deliver jobs to a remote write endpoint, retrying until they land."""

__version__ = "1.0.0"
