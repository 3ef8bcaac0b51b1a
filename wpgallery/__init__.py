"""Crawl a paginated WordPress REST feed into a cached, gallery-ready aggregate."""

__version__ = "0.1.0"
