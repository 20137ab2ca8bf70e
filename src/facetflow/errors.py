"""Exception hierarchy for facetflow.

Only guard violations have a recovery path (recording mode). Everything
else signals a programming or configuration mistake and propagates.
"""

from __future__ import annotations


class FacetflowError(Exception):
    """Base class for all facetflow errors."""


class UndefinedSubjectError(FacetflowError):
    """No level of the subject-builder chain produced a subject."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "failed to build subject. Have you missed subject definition?")


class GuardViolationError(FacetflowError, ValueError):
    """A guard predicate failed.

    Attributes:
        violation: The violation message (also the exception message)
    """

    def __init__(self, violation: str) -> None:
        super().__init__(violation)
        self.violation = violation


class UnknownAttributeError(FacetflowError, TypeError):
    """Session attributes were supplied that the configuration does not declare."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"Unknown attributes {names!r}")


class UnknownConditionError(FacetflowError, LookupError):
    """A rule condition names a predicate that was never registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown condition '{name}'")


class FrozenConfigurationError(FacetflowError):
    """Registration was attempted on a frozen configuration."""


class ConfigurationLoadError(FacetflowError):
    """A declarative (YAML) rule family could not be loaded."""
