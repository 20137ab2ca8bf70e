"""Resolution session.

A session is created per ``resolve`` call. It owns the parameter map and
the subject snapshot, carries the effective configuration and facet path
selected by sifting, and records the last guard violation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from facetflow.errors import GuardViolationError
from facetflow.pipeline.attributes import Attributes
from facetflow.pipeline.defaults import resolve_params
from facetflow.pipeline.executor import PipelineExecutor, build_base_subject
from facetflow.pipeline.guards import Guard, PredicateFn, check
from facetflow.pipeline.overrides import merge_overrides
from facetflow.pipeline.sifting import sift

if TYPE_CHECKING:
    from facetflow.pipeline.configuration import Configuration


@dataclass
class Session:
    """State of one resolution.

    Attributes:
        configuration: Effective configuration (the sifted one after sifting)
        params: Merged params (defaults under explicit), read-only
        explicit_params: Params supplied by the caller
        attributes: Caller-supplied attribute values
        facet_path: Names of the facets selected so far, root first
        violation: Message of the last guard violation, or None
    """

    configuration: Configuration
    params: Mapping[str, Any] = field(default_factory=dict)
    explicit_params: Mapping[str, Any] = field(default_factory=dict)
    attributes: Attributes = field(default_factory=lambda: Attributes(()))
    facet_path: tuple[str, ...] = ()
    violation: str | None = None
    _subject: Any = field(default=None, repr=False)
    _override_subject: Any = field(default=None, repr=False)

    @classmethod
    def open(
        cls,
        configuration: Configuration,
        params: Mapping[str, Any] | None = None,
        *,
        subject: Any = None,
        attributes: Mapping[str, Any] | Attributes | None = None,
    ) -> Session:
        """Create a root session.

        Args:
            configuration: Configuration to resolve against
            params: Explicit caller params
            subject: Subject overriding the builder chain
            attributes: Attribute values (validated against the declaration)

        Returns:
            Session with defaults merged under ``params``

        Raises:
            UnknownAttributeError: If an attribute is not declared
        """
        explicit = dict(params or {})
        if isinstance(attributes, Attributes):
            attrs = attributes.redeclare(configuration.attribute_names)
        else:
            attrs = Attributes(configuration.attribute_names, attributes)
        return cls(
            configuration=configuration,
            params=MappingProxyType(resolve_params(configuration, explicit)),
            explicit_params=MappingProxyType(explicit),
            attributes=attrs,
            _subject=subject,
            _override_subject=subject,
        )

    @property
    def subject(self) -> Any:
        """Current subject, built from the subject chain on first access.

        Raises:
            UndefinedSubjectError: If no subject could be built
        """
        if self._subject is None:
            self._subject = build_base_subject(self)
        return self._subject

    @subject.setter
    def subject(self, value: Any) -> None:
        self._subject = value

    def reset_subject(self) -> None:
        """Forget any built or folded subject, keeping the override subject."""
        self._subject = self._override_subject

    @property
    def sifted(self) -> bool:
        return bool(self.facet_path)

    def __getitem__(self, key: str) -> Any:
        """Read a param (None when absent)."""
        return self.params.get(key)

    def attr(self, name: str) -> Any:
        """Read a declared attribute.

        Raises:
            UnknownAttributeError: If the name is not declared
        """
        return self.attributes.get_attr(name)

    def guard(self, predicate: PredicateFn, message: str | None = None) -> None:
        """Evaluate an inline guard immediately.

        Raises:
            GuardViolationError: If the predicate is falsy (the session's
                resolve call records or re-raises it)
        """
        check(Guard(predicate=predicate, message=message), self)

    def specialized(self, configuration: Configuration, facet_names: list[str]) -> Session:
        """Derive the session for a sifted child configuration.

        Params are recomputed as the child's defaults under the explicit
        params; the override subject (if any) and attributes carry over.
        """
        return Session(
            configuration=configuration,
            params=MappingProxyType(resolve_params(configuration, self.explicit_params)),
            explicit_params=self.explicit_params,
            attributes=self.attributes.redeclare(configuration.attribute_names),
            facet_path=self.facet_path + tuple(facet_names),
            _subject=self._override_subject,
            _override_subject=self._override_subject,
        )

    def with_params(self, overrides: Mapping[str, Any]) -> Session:
        """Open a fresh session on the same configuration with extra explicit params."""
        return Session.open(
            self.configuration,
            {**self.explicit_params, **overrides},
            subject=self._override_subject,
            attributes=self.attributes,
        )

    def resolve(self, *presence_keys: str, params: Mapping[str, Any] | None = None) -> Any:
        """Sift, guard and fold the query rules over the subject.

        Args:
            *presence_keys: Keys coerced to True, overriding this session's params
            params: Further params merged over the presence keys

        Returns:
            The final subject, or None when a guard violation was recorded

        Raises:
            GuardViolationError: On guard failure in raising mode
            UndefinedSubjectError: If no subject could be built
        """
        self.violation = None
        if presence_keys or params is not None:
            other = self.with_params(merge_overrides(None, presence_keys, params))
            try:
                return other.resolve()
            finally:
                self.violation = other.violation

        # Guard mode comes from the sifted configuration.
        effective = self.configuration
        try:
            sifted = sift(self)
            effective = sifted.configuration
            return PipelineExecutor(sifted).run()
        except GuardViolationError as e:
            self.violation = e.violation
            if effective.raise_on_guard_violation:
                raise
            return None
