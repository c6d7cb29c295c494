"""Query, explore and validate a knowledge graph of source code stored as JSON."""

__version__ = "0.2.0"