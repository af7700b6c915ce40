"""Checks commits pushed to GitHub for files that belong in Git LFS."""

__version__ = "1.1.0"
