"""Guard predicates and the violation protocol.

Guards run in registration order and stop at the first failure. Whether
a failure raises or is recorded is decided by the session's effective
configuration (see :meth:`facetflow.pipeline.context.Session.resolve`).
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from facetflow.errors import GuardViolationError
from facetflow.pipeline.matcher import is_present

if TYPE_CHECKING:
    from facetflow.pipeline.context import Session

logger = logging.getLogger(__name__)

PredicateFn = Callable[["Session"], Any]


@dataclass(frozen=True, eq=False)
class Guard:
    """A validation predicate.

    Attributes:
        predicate: Callable receiving the session; falsy means violated
        message: Violation message, or None for a definition-site message
    """

    predicate: PredicateFn
    message: str | None = None

    @property
    def violation(self) -> str:
        """Message reported when this guard fails."""
        if self.message is not None:
            return self.message
        return f"guard block violated on {definition_site(self.predicate)}"


def definition_site(fn: Any) -> str:
    """Locate where a callable was defined.

    Args:
        fn: Function, partial, or callable object

    Returns:
        ``"<file>:<line>"``, or the callable's repr when no code is reachable
    """
    target = fn
    while isinstance(target, functools.partial):
        target = target.func
    target = inspect.unwrap(target)
    code = getattr(target, "__code__", None)
    if code is None:
        code = getattr(getattr(type(target), "__call__", None), "__code__", None)
    if code is None:
        return repr(fn)
    return f"{code.co_filename}:{code.co_firstlineno}"


def check(guard: Guard, session: Session) -> None:
    """Evaluate one guard.

    Raises:
        GuardViolationError: If the predicate is falsy
    """
    if guard.predicate(session):
        return
    violation = guard.violation
    logger.debug("Guard violated: %s", violation)
    raise GuardViolationError(violation)


def run_guards(guards: Iterable[Guard], session: Session) -> None:
    """Evaluate guards in order, failing on the first violation.

    Raises:
        GuardViolationError: On the first falsy predicate
    """
    for guard in guards:
        check(guard, session)


def has_param(*keys: str) -> PredicateFn:
    """Build a predicate requiring the given params to be present."""

    def predicate(session: Session) -> bool:
        return all(is_present(session.params.get(key)) for key in keys)

    predicate.__name__ = f"has_param({', '.join(keys)})"
    return predicate


def subject_has(name: str, value: Any = None) -> PredicateFn:
    """Build a predicate checking an attribute (or key) of the base subject.

    Args:
        name: Attribute name, or mapping key for dict subjects
        value: Required value; when None any present value passes
    """

    def predicate(session: Session) -> bool:
        subject = session.subject
        if isinstance(subject, dict):
            actual = subject.get(name)
        else:
            actual = getattr(subject, name, None)
        return is_present(actual) if value is None else actual == value

    predicate.__name__ = f"subject_has({name})"
    return predicate
