"""
Application-level exceptions.

Every error carries a stable ``code`` so the surrounding API layer can map it
to a response without string matching. Invalid input also subclasses
ValueError; a strict decode miss also subclasses LookupError.
"""

from __future__ import annotations


class FriendScoreError(Exception):
    """Base class for all friendscore errors."""

    code = "friendscore_error"


class InvalidInputError(FriendScoreError, ValueError):
    """Input rejected synchronously; never clamped."""

    code = "invalid_input"


class InvalidScoreError(InvalidInputError):
    """Rating score outside [0.5, 10] or not on a 0.5 step."""

    code = "invalid_score"


class InvalidWeightError(InvalidInputError):
    """Trust weight outside [0, 2]."""

    code = "invalid_weight"


class UnknownRatingError(InvalidInputError):
    """Grade or modifier not in the rating table."""

    code = "unknown_rating"


class UnmappedScoreError(FriendScoreError, LookupError):
    """Strict decode of a score that no (grade, modifier) encodes to."""

    code = "unmapped_score"


class StorageError(FriendScoreError):
    """Read or write against the backing store failed."""

    code = "storage_error"
