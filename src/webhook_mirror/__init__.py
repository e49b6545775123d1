"""Keep local git working copies in sync with remote repositories via webhooks."""

__version__ = "0.1.0"
