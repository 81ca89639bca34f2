"""Exception types raised inside SDV Audio Mod Maker.

Components raise these internally and convert them into typed results
(or user-facing notices) at their public boundary.
"""

from __future__ import annotations


class AudioModError(Exception):
    """Base class for all errors raised by the package."""


class ValidationError(AudioModError):
    """A command was rejected before reaching the state machine."""


class ProjectDecodeError(AudioModError):
    """A save document could not be turned into a project."""


class ScanError(AudioModError):
    """The assets folder could not be scanned at all."""

