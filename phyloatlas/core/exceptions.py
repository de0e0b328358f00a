"""
Custom exceptions with actionable guidance.

Three failure kinds are surfaced to callers: bad input shapes, malformed
Newick text and methods that exist in the menu but are not implemented.
"""

from __future__ import annotations


class PhyloAtlasError(Exception):
    """Base exception for phyloatlas errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class InvalidInputError(PhyloAtlasError, ValueError):
    """Raised on shape or size mismatches in sequences, matrices or trees."""


class NewickFormatError(PhyloAtlasError, ValueError):
    """Raised when Newick text cannot be parsed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            suggestion=(
                "Input string may not be in Newick style. Check that every "
                "parenthesis is closed and that the tree has at least two leaves, "
                "e.g. (A:0.1,B:0.2);"
            ),
        )


class MethodNotImplementedError(PhyloAtlasError, NotImplementedError):
    """Raised for distance models or linkage rules that are listed but not available."""

    def __init__(self, kind: str, method: str, available: list[str]):
        super().__init__(
            message=f"{kind} '{method}' is not implemented",
            suggestion=f"Use one of: {', '.join(available)}",
        )
        self.kind = kind
        self.method = method


__all__ = [
    'PhyloAtlasError',
    'InvalidInputError',
    'NewickFormatError',
    'MethodNotImplementedError',
]
