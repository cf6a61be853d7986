"""livescribe - resilient live speech-to-text sessions."""

__version__ = "0.1.0"
