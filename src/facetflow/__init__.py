"""facetflow - declarative conditional transformation pipelines.

Register query rules, sift facets and guards on a :class:`Configuration`,
then resolve it against a parameter map to fold the applicable rules over
a subject.
"""

from facetflow.api import (
    define_configuration,
    register_guard,
    register_query_rule,
    register_sift_facet,
    resolve,
)
from facetflow.config import FacetflowSettings, get_settings
from facetflow.errors import (
    ConfigurationLoadError,
    FacetflowError,
    FrozenConfigurationError,
    GuardViolationError,
    UndefinedSubjectError,
    UnknownAttributeError,
    UnknownConditionError,
)
from facetflow.loader import load_configuration
from facetflow.pipeline import Configuration, MatchSpec, Order, Session, has_param, subject_has

__all__ = [
    "Configuration",
    "ConfigurationLoadError",
    "FacetflowError",
    "FacetflowSettings",
    "FrozenConfigurationError",
    "GuardViolationError",
    "MatchSpec",
    "Order",
    "Session",
    "UndefinedSubjectError",
    "UnknownAttributeError",
    "UnknownConditionError",
    "define_configuration",
    "get_settings",
    "has_param",
    "load_configuration",
    "register_guard",
    "register_query_rule",
    "register_sift_facet",
    "resolve",
    "subject_has",
]
