"""Failure types raised inside the records core."""


class BiblioTechError(Exception):
    """Base class for every failure the core reports."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RemoteFailure(BiblioTechError):
    """A remote store call was rejected or could not be completed."""


class ValidationFailure(BiblioTechError):
    """Input was rejected before any remote call was issued."""
