"""Prayer time scraping, storage and local adhan alerts."""

__version__ = "0.1.0"
