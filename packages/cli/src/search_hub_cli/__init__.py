"""Search Hub CLI - command line access to the retrieval engine."""

__version__ = "1.0.0"
