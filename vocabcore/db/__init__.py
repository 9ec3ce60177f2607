"""Database package for vocabcore.

This package provides the DuckDB-backed storage collaborator.
Only VocabularyDatabase is exported as the public API.
"""

from .database import VocabularyDatabase

__all__ = ["VocabularyDatabase"]
