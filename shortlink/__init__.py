"""URL shortening web service with redirects and click logging."""

__version__ = "0.1.0"