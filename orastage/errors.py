from __future__ import annotations

from dataclasses import dataclass


class OrastageError(Exception):
    """Base class for failures that abort an orastage command."""


class ConfigError(OrastageError):
    """Missing or unusable directories, files or settings."""


class ParseError(OrastageError):
    """The input log lacks information required to produce output."""


class ConflictError(OrastageError):
    """An output file already exists and overwriting was not requested."""


class WriteError(OrastageError):
    """Writing an output file failed; no partial file was left in place."""


class BuildError(OrastageError):
    """The external image builder could not be run or returned an error."""


@dataclass(frozen=True)
class ResolutionWarning:
    """A manifest entry that could not be found in any source directory."""

    filename: str
    message: str
