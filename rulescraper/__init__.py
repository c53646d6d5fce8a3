# rulescraper/__init__.py
"""Declarative extraction rules, path remapping and concurrent downloads."""
