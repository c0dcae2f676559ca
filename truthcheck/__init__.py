"""truthcheck: claim extraction and multi-source trust scoring for article text."""

__version__ = "0.1.0"
