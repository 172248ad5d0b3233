from typing import Optional


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
    """Raised for errors during flashcard operations (CRUD)."""

    pass


class CardNotFoundError(CardOperationError):
    """Raised when a flashcard id does not exist in the database."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class SessionOperationError(DatabaseError):
    """Indicates an error during a study-session database operation."""

    pass


class GenerationError(Exception):
    """Raised when the text-generation service cannot produce flashcards."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DocumentExtractionError(Exception):
    """Raised when text cannot be extracted from an uploaded document."""

    pass


class UnsupportedDocumentError(DocumentExtractionError):
    """Raised for document formats that have no text extractor."""

    pass
