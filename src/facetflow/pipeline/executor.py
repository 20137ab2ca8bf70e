"""Pipeline executor.

Runs the guards of the effective configuration against the base subject,
then folds the ordered query rules over the subject.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from facetflow.config import get_settings
from facetflow.errors import UndefinedSubjectError
from facetflow.pipeline.guards import run_guards
from facetflow.pipeline.matcher import matches
from facetflow.pipeline.ordering import ExecutionPlan

if TYPE_CHECKING:
    from facetflow.pipeline.context import Session
    from facetflow.pipeline.rule import Rule

logger = logging.getLogger(__name__)


def build_base_subject(session: Session) -> Any:
    """Build the subject through the builder chain, root first.

    Each builder receives the session and the previous builder's subject
    (None for the first). A builder returning None keeps the previous one.

    Raises:
        UndefinedSubjectError: If the chain produced no subject
    """
    subject: Any = None
    for builder in session.configuration.subject_chain:
        built = builder(session, subject)
        if built is not None:
            subject = built

    if subject is None:
        raise UndefinedSubjectError()
    return subject


class PipelineExecutor:
    """Folds the query rules of a (sifted) session over its subject.

    Attributes:
        session: Session whose configuration is final
        plan: Query rules in execution order
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.plan = ExecutionPlan(session.configuration.rules)
        self._log_level = logging.INFO if get_settings().log_rule_application else logging.DEBUG

    def run(self) -> Any:
        """Guard, then apply every matching rule in order.

        Returns:
            Final subject

        Raises:
            GuardViolationError: If a guard (or inline guard) fails
            UndefinedSubjectError: If no subject could be built
        """
        session = self.session
        session.reset_subject()
        run_guards(session.configuration.guards, session)

        subject = session.subject
        for rule in self.plan.rules:
            subject = self._apply_rule(rule, subject)
        session.subject = subject
        return subject

    def _apply_rule(self, rule: Rule, subject: Any) -> Any:
        """Apply a single rule.

        Args:
            rule: Query rule
            subject: Current subject

        Returns:
            The action's result, or ``subject`` when the rule does not
            apply or the action returns None
        """
        session = self.session
        session.subject = subject

        result = matches(rule.match, session.params, session)
        if not result.applies:
            logger.debug("Rule '%s' skipped", rule.name)
            return subject

        logger.log(self._log_level, "Applying rule '%s' with %r", rule.name, result.values)
        new_subject = rule.apply(session, result.values)
        if new_subject is None:
            return subject
        return new_subject
