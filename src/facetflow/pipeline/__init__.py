"""Conditional transformation pipeline.

This package implements the resolution core:
- Query rules matched against a parameter map
- Deterministic ordering with FIRST/LAST pins and stable ties
- Layered defaults
- Recursive sifting into facets
- Guards with raise-or-record violations

Formal Model:
    Rule rᵢ = (mᵢ, fᵢ, oᵢ) where:
        mᵢ: Params × Session → (Bool, Values)   (match)
        fᵢ: Session × Values → Subject | None   (action)
        oᵢ: order key

    apply(r, s) = if m(p).applies then (f(s, m(p).values) or s) else s
    resolve(p)  = fold(apply, sort(rules(sift(p))), base_subject)
"""

from facetflow.pipeline.attributes import Attributes
from facetflow.pipeline.configuration import Configuration
from facetflow.pipeline.context import Session
from facetflow.pipeline.defaults import fetch_defaults
from facetflow.pipeline.executor import PipelineExecutor, build_base_subject
from facetflow.pipeline.guards import Guard, has_param, subject_has
from facetflow.pipeline.matcher import MatchResult, is_present, matches
from facetflow.pipeline.ordering import ExecutionPlan, sorted_rules
from facetflow.pipeline.overrides import OverrideSet, PresenceOverride, parse_overrides
from facetflow.pipeline.rule import Condition, Facet, MatchSpec, Order, Rule
from facetflow.pipeline.sifting import sift

__all__ = [
    "Attributes",
    "Condition",
    "Configuration",
    "ExecutionPlan",
    "Facet",
    "Guard",
    "MatchResult",
    "MatchSpec",
    "Order",
    "OverrideSet",
    "PipelineExecutor",
    "PresenceOverride",
    "Rule",
    "Session",
    "build_base_subject",
    "fetch_defaults",
    "has_param",
    "is_present",
    "matches",
    "parse_overrides",
    "sift",
    "sorted_rules",
    "subject_has",
]
