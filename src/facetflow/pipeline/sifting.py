"""Recursive facet selection ("sifting").

At each level every facet of the session's configuration is matched
against the current params. All applying facets run, in registration
order, against one anonymous child configuration; params are then
recomputed from the child's defaults under the explicit params and the
next level is sifted, until no facet applies.

Facets are not copied into the child, so a level only sees the facets
registered by the bodies that produced it. Beyond that there is no cycle
detection: a body that keeps registering applying facets never reaches a
fixpoint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from facetflow.pipeline.matcher import matches

if TYPE_CHECKING:
    from facetflow.pipeline.context import Session
    from facetflow.pipeline.rule import Facet

logger = logging.getLogger(__name__)


def applying_facets(session: Session) -> list[tuple[Facet, list[Any]]]:
    """Find the facets of the session's configuration that apply.

    Returns:
        ``(facet, matched_values)`` pairs in registration order
    """
    applying: list[tuple[Facet, list[Any]]] = []
    for facet in session.configuration.facets:
        result = matches(facet.match, session.params, session)
        if result.applies:
            applying.append((facet, result.values))
        else:
            logger.debug("Facet '%s' skipped", facet.name)
    return applying


def sift_once(session: Session) -> Session | None:
    """Descend one level.

    Returns:
        The specialized session, or None if no facet applies
    """
    applying = applying_facets(session)
    if not applying:
        return None

    names = [facet.name for facet, _ in applying]
    parent = session.configuration
    child = parent.specialize(f"{parent.name}/{'+'.join(names)}")
    for facet, values in applying:
        logger.debug("Applying facet '%s' on '%s'", facet.name, parent.name)
        facet.specialize(child, values)
    return session.specialized(child, names)


def sift(session: Session) -> Session:
    """Sift to the deepest applicable facet chain.

    Args:
        session: Root session

    Returns:
        The session of the most specific level (``session`` itself when
        no facet applies)
    """
    current = session
    while True:
        deeper = sift_once(current)
        if deeper is None:
            if current.facet_path:
                logger.debug("Sifted '%s' to %s", session.configuration.name, " → ".join(current.facet_path))
            return current
        current = deeper
