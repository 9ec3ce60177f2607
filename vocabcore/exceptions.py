from pathlib import Path
from typing import Optional, Union


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class CardOperationError(DatabaseError):
    """Raised for errors during card operations (CRUD)."""

    pass


class DeckOperationError(DatabaseError):
    """Raised for errors during deck operations (CRUD)."""

    pass


class DeckNotFoundError(DatabaseError):
    """Raised when a specified deck is not found."""

    pass


class ProgressOperationError(DatabaseError):
    """Indicates an error while reading or writing per-user card progress."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class DictionaryLookupError(Exception):
    """Raised when the dictionary service cannot be reached or returns
    an unusable payload."""

    def __init__(self, word: str, message: str):
        super().__init__(f"Lookup of '{word}' failed: {message}")
        self.word = word


class WordNotFoundError(DictionaryLookupError):
    """Raised when the dictionary has no entry for a word."""

    def __init__(self, word: str):
        super().__init__(word, "no definition found for this word")


class DeckImportError(Exception):
    """Raised when a deck file cannot be read or fails validation."""

    def __init__(self, file_path: Union[str, Path], message: str):
        self.file_path = Path(file_path)
        self.message = message
        super().__init__(f"{self.file_path.name}: {message}")
