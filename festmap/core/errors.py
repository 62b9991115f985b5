"""
errors.py — Exception taxonomy for the feed engine.

Store-level errors carry a structured kind so callers never have to
match on backend error text:

  StoreError(kind=UNKNOWN_COLUMN, column="festival_id")
      the backing schema has no such column → schema fallback
  StoreError(kind=UNAVAILABLE)
      driver / network failure → surfaced as a status message
  StoreError(kind=REJECTED)
      the store refused the document (validator, constraint)

Operation-level errors wrap them at the boundary where they are caught
(poll cycle, publish action, route handler).
"""

from enum import Enum
from typing import Optional


class StoreErrorKind(str, Enum):
    UNKNOWN_COLUMN = "unknown_column"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"


class StoreError(Exception):
    """Raised by a PostStore implementation."""

    def __init__(self, kind: StoreErrorKind, message: str, column: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.column = column

    def is_unknown_column(self, column: str) -> bool:
        return self.kind is StoreErrorKind.UNKNOWN_COLUMN and self.column == column


class MediaStoreError(Exception):
    """Raised when the media store cannot accept an upload."""


class MediaNotFound(MediaStoreError):
    """No object exists at the requested path."""


class IngestionError(Exception):
    """A fetch cycle failed for a reason other than a recoverable schema mismatch."""


class PublishError(Exception):
    """Base class for failures of the publish sequence."""


class UploadError(PublishError):
    """The media upload failed; no row insert was attempted."""


class InsertError(PublishError):
    """The media object was stored but the row insert failed."""


class PermissionDeniedError(Exception):
    """Location (or camera) permission was refused by the user."""
