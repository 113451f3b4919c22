"""Building blocks for workflow command-line tooling."""

__version__ = "0.1.0"