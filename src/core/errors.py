"""Errors raised by adapters across the core ports."""

from __future__ import annotations


class AttachmentFetchError(Exception):
    """An attachment could not be downloaded or decoded as text."""


class PasteSubmissionError(Exception):
    """The paste service did not create a paste."""
