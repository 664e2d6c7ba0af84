"""Blog API - posts, categories, users and nested comments."""

__version__ = "0.1.0"
