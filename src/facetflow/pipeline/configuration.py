"""Rule-family configuration and its registration API.

A :class:`Configuration` aggregates query rules, sift facets, guards,
layered defaults, the subject-builder chain, named conditions and declared
attributes. Configurations are built once, then shared read-only by every
resolution. Deriving a configuration snapshots its parent: later changes to
the parent never reach already-derived children.

Example:
    users = Configuration("users", subject=lambda session, _: load_rows(), defaults={"page": 1})

    @users.query("name")
    def by_name(session, name):
        return [row for row in session.subject if row["name"] == name]

    @users.sift(role="admin")
    def admin(child, role):
        child.defaults(include_hidden=True)

    users.resolve({"name": "ada"})
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from facetflow.config import get_settings
from facetflow.errors import FrozenConfigurationError
from facetflow.pipeline.context import Session
from facetflow.pipeline.defaults import DefaultsLayer, fetch_defaults, freeze_layer
from facetflow.pipeline.guards import Guard, PredicateFn
from facetflow.pipeline.ordering import ExecutionPlan
from facetflow.pipeline.rule import (
    ActionFn,
    BodyFn,
    ConditionTest,
    Facet,
    MatchSpec,
    OrderKey,
    Rule,
    callable_name,
    order_value,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SubjectFn = Callable[[Session, Any], Any]
"""Subject builder: ``builder(session, previous_subject) -> subject``."""


def _default_raise_mode() -> bool:
    return get_settings().raise_on_guard_violation


class Configuration:
    """Inheritable state of a rule family.

    Attributes:
        name: Identifier used in logs, facet paths and the CLI
        raise_on_guard_violation: Raise on guard failure (True) or record
            the violation and resolve to None (False). Derived and sifted
            children copy it; a facet body may set it on its child
        parent: Configuration this one was derived from, if any
    """

    def __init__(
        self,
        name: str = "configuration",
        *,
        subject: SubjectFn | None = None,
        defaults: DefaultsLayer | None = None,
        raise_on_guard_violation: bool | None = None,
    ) -> None:
        """Create a root configuration.

        Args:
            name: Identifier for logs
            subject: Root subject builder
            defaults: Root defaults layer (mapping or deferred callable)
            raise_on_guard_violation: Guard failure mode; None takes the
                ``raise_on_guard_violation`` setting
        """
        self.name = name
        self.raise_on_guard_violation = (
            _default_raise_mode() if raise_on_guard_violation is None else bool(raise_on_guard_violation)
        )
        self.parent: Configuration | None = None
        self.conditions: dict[str, PredicateFn] = {}

        self._rules: list[Rule] = []
        self._facets: list[Facet] = []
        self._guards: list[Guard] = []
        self._inherited_defaults: tuple[DefaultsLayer, ...] = ()
        self._own_defaults: list[DefaultsLayer] = []
        self._inherited_subjects: tuple[SubjectFn, ...] = ()
        self._own_subject: SubjectFn | None = None
        self._attribute_names: list[str] = []
        self._frozen = False

        if subject is not None:
            self.subject(subject)
        if defaults is not None:
            self.defaults(defaults)

    def __repr__(self) -> str:
        return (
            f"Configuration(name={self.name!r}, rules={len(self._rules)}, "
            f"facets={len(self._facets)}, guards={len(self._guards)})"
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    @property
    def facets(self) -> tuple[Facet, ...]:
        return tuple(self._facets)

    @property
    def guards(self) -> tuple[Guard, ...]:
        return tuple(self._guards)

    @property
    def defaults_layers(self) -> tuple[DefaultsLayer, ...]:
        """Defaults layers, ancestors first."""
        return self._inherited_defaults + tuple(self._own_defaults)

    @property
    def subject_chain(self) -> tuple[SubjectFn, ...]:
        """Subject builders from the root to this configuration."""
        if self._own_subject is None:
            return self._inherited_subjects
        return self._inherited_subjects + (self._own_subject,)

    @property
    def attribute_names(self) -> tuple[str, ...]:
        return tuple(self._attribute_names)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def plan(self) -> ExecutionPlan:
        """Query rules in execution order."""
        return ExecutionPlan(self._rules)

    def fetch_defaults(self, explicit: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Merge this configuration's defaults layers."""
        return fetch_defaults(self, explicit)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def derive(self, name: str | None = None) -> Configuration:
        """Create a child configuration inheriting a snapshot of this one.

        The child copies rules, facets, guards, defaults, subject builders,
        named conditions, declared attributes and the guard mode.
        """
        return self._child(name or self.name, with_facets=True)

    def specialize(self, name: str) -> Configuration:
        """Create the anonymous child used by sifting.

        Like :meth:`derive` but without facets: only facets registered by
        the applying facet bodies are considered at the next level.
        """
        return self._child(name, with_facets=False)

    def _child(self, name: str, *, with_facets: bool) -> Configuration:
        child = Configuration(name, raise_on_guard_violation=self.raise_on_guard_violation)
        child.parent = self
        child.conditions = dict(self.conditions)
        child._rules = list(self._rules)
        child._facets = list(self._facets) if with_facets else []
        child._guards = list(self._guards)
        child._inherited_defaults = self.defaults_layers
        child._inherited_subjects = self.subject_chain
        child._attribute_names = list(self._attribute_names)
        return child

    def freeze(self) -> Configuration:
        """Reject further registration on this configuration.

        Derived children start unfrozen.
        """
        self._frozen = True
        return self

    def _check_writable(self) -> None:
        if self._frozen:
            raise FrozenConfigurationError(f"Configuration '{self.name}' is frozen")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_rule(
        self,
        match: MatchSpec,
        action: ActionFn,
        *,
        order: OrderKey = None,
        name: str | None = None,
    ) -> Rule:
        """Register a query rule.

        Args:
            match: When the rule applies
            action: ``action(session, *matched_values) -> subject | None``
            order: Order key; None is the default group (0)
            name: Identifier for logs (defaults to the action's name)

        Returns:
            The registered Rule

        Raises:
            FrozenConfigurationError: If the configuration is frozen
            ValueError: If ``order`` is an unknown name
        """
        self._check_writable()
        order_value(order)
        rule = Rule(
            match=match,
            action=action,
            order=order,
            index=len(self._rules),
            name=name or callable_name(action),
        )
        self._rules.append(rule)
        logger.debug("Registered rule '%s' on '%s' (%s)", rule.name, self.name, match.describe())
        return rule

    def add_facet(self, match: MatchSpec, body: BodyFn, *, name: str | None = None) -> Facet:
        """Register a sift facet.

        Args:
            match: When the facet applies
            body: ``body(child_configuration, *matched_values)``
            name: Facet name (defaults to the body's name)

        Returns:
            The registered Facet
        """
        self._check_writable()
        facet = Facet(match=match, body=body, name=name or callable_name(body), index=len(self._facets))
        self._facets.append(facet)
        logger.debug("Registered facet '%s' on '%s' (%s)", facet.name, self.name, match.describe())
        return facet

    def add_guard(self, predicate: PredicateFn, message: str | None = None) -> Guard:
        """Register a guard evaluated before query rules run."""
        self._check_writable()
        guard = Guard(predicate=predicate, message=message)
        self._guards.append(guard)
        return guard

    def query(
        self,
        *presence_keys: str,
        order: OrderKey = None,
        when: ConditionTest | Iterable[ConditionTest] | None = None,
        unless: ConditionTest | Iterable[ConditionTest] | None = None,
        force: bool = False,
        name: str | None = None,
        **values: Any,
    ) -> Callable[[F], F]:
        """Decorator registering a query rule.

        Keyword arguments other than ``order``, ``when``, ``unless``,
        ``force`` and ``name`` are value constraints. Use :meth:`add_rule`
        with a :class:`MatchSpec` to constrain a param with one of those names.

        Example:
            @config.query("name", kind="user", order="first")
            def by_name(session, name, kind):
                ...
        """
        match = MatchSpec.build(*presence_keys, values=values, when=when, unless=unless, force=force)

        def decorator(fn: F) -> F:
            self.add_rule(match, fn, order=order, name=name)
            return fn

        return decorator

    def sift(
        self,
        *presence_keys: str,
        when: ConditionTest | Iterable[ConditionTest] | None = None,
        unless: ConditionTest | Iterable[ConditionTest] | None = None,
        force: bool = False,
        name: str | None = None,
        **values: Any,
    ) -> Callable[[F], F]:
        """Decorator registering a sift facet.

        Example:
            @config.sift(role="admin")
            def admin(child, role):
                child.defaults(include_hidden=True)
        """
        match = MatchSpec.build(*presence_keys, values=values, when=when, unless=unless, force=force)

        def decorator(fn: F) -> F:
            self.add_facet(match, fn, name=name)
            return fn

        return decorator

    def guard(self, predicate: PredicateFn | None = None, message: str | None = None) -> Any:
        """Register a guard, directly or as a decorator.

        Example:
            config.guard(lambda session: session.subject is not None, "no subject")

            @config.guard(message="tenant required")
            def has_tenant(session):
                return session.attr("tenant") is not None
        """
        if predicate is not None:
            return self.add_guard(predicate, message)

        def decorator(fn: F) -> F:
            self.add_guard(fn, message)
            return fn

        return decorator

    def subject(self, builder: F) -> F:
        """Set this level's subject builder (usable as a decorator).

        Replaces any builder previously set on this configuration; builders
        inherited from ancestors still run first.
        """
        self._check_writable()
        self._own_subject = builder
        return builder

    def defaults(self, layer: Any = None, **values: Any) -> Any:
        """Add a defaults layer.

        Accepts a mapping, keyword values, or a callable receiving the
        params resolved so far (usable as a decorator).

        Example:
            config.defaults(page=1)

            @config.defaults
            def per_page(params):
                return {"per_page": 100 if params.get("export") else 20}
        """
        self._check_writable()
        if layer is None and not values:
            raise TypeError("defaults() needs a mapping, a callable or keyword values")
        if layer is not None:
            self._own_defaults.append(freeze_layer(layer))
        if values:
            self._own_defaults.append(freeze_layer(values))
        return layer

    def condition(self, name: str, predicate: PredicateFn | None = None) -> Any:
        """Register a named condition usable in ``when``/``unless``.

        Example:
            @config.condition("archived?")
            def archived(session):
                return session.params.get("archived") is not None
        """
        self._check_writable()
        if predicate is not None:
            self.conditions[name] = predicate
            return predicate

        def decorator(fn: F) -> F:
            self.conditions[name] = fn
            return fn

        return decorator

    def attributes(self, *names: str) -> None:
        """Declare attribute names sessions may be built with."""
        self._check_writable()
        for attr_name in names:
            if attr_name not in self._attribute_names:
                self._attribute_names.append(attr_name)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def session(
        self,
        params: Mapping[str, Any] | None = None,
        *,
        subject: Any = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> Session:
        """Open a resolution session without resolving it."""
        return Session.open(self, params, subject=subject, attributes=attributes)

    def build(self, **attributes: Any) -> Session:
        """Open a session with no params, only attributes."""
        return self.session(attributes=attributes)

    def resolve(
        self,
        params: Mapping[str, Any] | None = None,
        *presence_keys: str,
        extra: Mapping[str, Any] | None = None,
        subject: Any = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> Any:
        """Resolve the subject for the given params.

        Args:
            params: Explicit params
            *presence_keys: Keys coerced to True over ``params``
            extra: Params merged over the presence keys
            subject: Subject overriding the builder chain
            attributes: Session attribute values

        Returns:
            The final subject, or None when a guard violation was recorded

        Raises:
            GuardViolationError: On guard failure in raising mode
            UndefinedSubjectError: If no subject could be built
        """
        session = self.session(params, subject=subject, attributes=attributes)
        if presence_keys or extra is not None:
            return session.resolve(*presence_keys, params=extra)
        return session.resolve()
