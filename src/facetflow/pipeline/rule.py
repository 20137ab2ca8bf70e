"""Rule and facet specifications.

Defines the immutable records registered on a configuration: the match
specification shared by query rules and facets, the conditions that gate
them and the order keys used to sequence query rules.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from facetflow.pipeline.configuration import Configuration
    from facetflow.pipeline.context import Session


# Type aliases
ActionFn = Callable[..., Any]
"""Query rule action: ``action(session, *matched_values) -> subject | None``."""

BodyFn = Callable[..., None]
"""Facet body: ``body(child_configuration, *matched_values)``."""

ConditionTest = Union[str, bool, Callable[["Session"], Any]]


class Order(Enum):
    """Symbolic order keys for query rules."""

    FIRST = "first"  # before every explicit number
    DEFAULT = "default"  # same as 0
    LAST = "last"  # after every explicit number


OrderKey = Union[Order, str, int, float, None]


def order_value(order: OrderKey) -> float:
    """Resolve an order key to the number it sorts by.

    Args:
        order: ``Order`` member, ``"first"``/``"last"``/``"default"``,
            an explicit number, or None

    Returns:
        ``-inf`` for FIRST, ``+inf`` for LAST, the number itself, or 0

    Raises:
        ValueError: If a string is not a known order name
        TypeError: If the key is not a number, string or ``Order``
    """
    if order is None:
        return 0.0
    if isinstance(order, str):
        try:
            order = Order(order.lower())
        except ValueError:
            raise ValueError(f"Unknown order '{order}' (expected first, last, default or a number)") from None
    if isinstance(order, Order):
        if order is Order.FIRST:
            return -math.inf
        if order is Order.LAST:
            return math.inf
        return 0.0
    if isinstance(order, bool) or not isinstance(order, (int, float)):
        raise TypeError(f"Order must be a number or Order member, got {type(order).__name__}")
    return float(order)


@dataclass(frozen=True)
class Condition:
    """A gate evaluated against the session before presence checks.

    Attributes:
        test: Name of a registered condition, literal bool, or callable
            receiving the session
        negate: True for ``unless`` conditions (the test must be falsy)
    """

    test: ConditionTest
    negate: bool = False

    @property
    def label(self) -> str:
        """Human-readable form for logs and the CLI."""
        if isinstance(self.test, (str, bool)):
            text = str(self.test)
        else:
            text = getattr(self.test, "__name__", repr(self.test))
        return f"unless {text}" if self.negate else f"if {text}"


def _conditions(tests: ConditionTest | Iterable[ConditionTest] | None, negate: bool) -> tuple[Condition, ...]:
    if tests is None:
        return ()
    if isinstance(tests, (str, bool)) or callable(tests):
        return (Condition(tests, negate),)
    return tuple(Condition(test, negate) for test in tests)


@dataclass(frozen=True)
class MatchSpec:
    """When a rule or facet applies.

    Attributes:
        presence_keys: Params that must be present
        value_constraints: ``(key, required_value)`` pairs that must be equal
        conditions: Gates that must all hold
        force: Apply whenever the conditions hold, ignoring presence/values
    """

    presence_keys: tuple[str, ...] = ()
    value_constraints: tuple[tuple[str, Any], ...] = ()
    conditions: tuple[Condition, ...] = ()
    force: bool = False

    @classmethod
    def build(
        cls,
        *presence_keys: str,
        values: Mapping[str, Any] | None = None,
        when: ConditionTest | Iterable[ConditionTest] | None = None,
        unless: ConditionTest | Iterable[ConditionTest] | None = None,
        force: bool = False,
    ) -> MatchSpec:
        """Build a spec from the keyword form used by the registration API."""
        return cls(
            presence_keys=tuple(presence_keys),
            value_constraints=tuple((values or {}).items()),
            conditions=_conditions(when, False) + _conditions(unless, True),
            force=force,
        )

    @property
    def is_empty(self) -> bool:
        """True when there are neither presence keys nor value constraints."""
        return not self.presence_keys and not self.value_constraints

    def describe(self) -> str:
        """Compact text form, e.g. ``name, kind='user', if admin?``."""
        parts = list(self.presence_keys)
        parts.extend(f"{key}={value!r}" for key, value in self.value_constraints)
        parts.extend(condition.label for condition in self.conditions)
        text = ", ".join(parts) or "*"
        return f"{text} (force)" if self.force else text


def as_match_spec(spec: MatchSpec | Mapping[str, Any] | Iterable[str] | str | None) -> MatchSpec:
    """Coerce the loose match forms accepted by the functional API.

    A mapping becomes value constraints, a string or iterable of strings
    becomes presence keys, None becomes the empty spec.
    """
    if spec is None:
        return MatchSpec()
    if isinstance(spec, MatchSpec):
        return spec
    if isinstance(spec, Mapping):
        return MatchSpec.build(values=spec)
    if isinstance(spec, str):
        return MatchSpec.build(spec)
    return MatchSpec.build(*spec)


@dataclass(frozen=True, eq=False)
class Rule:
    """A registered query rule.

    Attributes:
        match: When the rule applies
        action: Callable transforming the subject
        order: Order key (see :func:`order_value`)
        index: Registration position, used to break order ties
        name: Identifier for logs (defaults to the action's name)
    """

    match: MatchSpec
    action: ActionFn
    order: OrderKey = Order.DEFAULT
    index: int = 0
    name: str = ""

    @property
    def sort_key(self) -> tuple[float, int]:
        return (order_value(self.order), self.index)

    def apply(self, session: Session, values: list[Any]) -> Any:
        """Run the action with the matched values."""
        return self.action(session, *values)


@dataclass(frozen=True, eq=False)
class Facet:
    """A specialization boundary selected by sifting.

    Attributes:
        match: When the facet applies
        body: Callable registering rules, facets, guards and defaults on
            a fresh child configuration
        name: Facet name, recorded in the session's facet path
        index: Registration position
    """

    match: MatchSpec
    body: BodyFn
    name: str = ""
    index: int = 0

    def specialize(self, child: Configuration, values: list[Any]) -> None:
        """Run the body against the child configuration."""
        self.body(child, *values)


def callable_name(fn: Any) -> str:
    """Best-effort name for a callable."""
    return getattr(fn, "__name__", None) or repr(fn)
