"""Exception types raised by the emoji asset tools."""

from __future__ import annotations


class EmojiPrepError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(EmojiPrepError, ValueError):
    """Invalid run configuration, detected before any work starts."""


class DispatchError(EmojiPrepError):
    """A worker's execution context failed and the run was aborted."""


class GitHubError(EmojiPrepError):
    """A GitHub URL could not be parsed or an API request failed."""
