"""Declarative rule families loaded from YAML.

A rule family file references actions, facet-level subject builders,
guards and named conditions by Python import path:

    facetflow:
      name: users
      raise_on_guard_violation: true
      subject: myapp.queries.all_users
      defaults: {page: 1}
      conditions:
        archived?: myapp.queries.wants_archived
      rules:
        - action: myapp.queries.by_name
          presence: [name]
        - action: myapp.queries.paginate
          presence: [page]
          order: last
      guards:
        - require: [tenant]
          message: tenant is required
      facets:
        - name: admin
          values: {role: admin}
          defaults: {include_hidden: true}
          rules:
            - action: myapp.queries.with_hidden
              presence: [include_hidden]
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from facetflow.errors import ConfigurationLoadError
from facetflow.pipeline.configuration import Configuration
from facetflow.pipeline.guards import has_param
from facetflow.pipeline.rule import MatchSpec, order_value

logger = logging.getLogger(__name__)


def import_object(path: str) -> Any:
    """Import an object from ``package.module.attr`` or ``package.module:attr``.

    Raises:
        ConfigurationLoadError: If the module or attribute cannot be found
    """
    if ":" in path:
        module_path, _, attr_path = path.partition(":")
    else:
        module_path, _, attr_path = path.rpartition(".")
    if not module_path or not attr_path:
        raise ConfigurationLoadError(f"Invalid import path '{path}'")

    try:
        target: Any = importlib.import_module(module_path)
        for part in attr_path.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError) as e:
        raise ConfigurationLoadError(f"Failed to import '{path}': {e}") from e
    return target


class MatchEntry(BaseModel):
    """Match fields shared by rules and facets."""

    presence: list[str] = Field(default_factory=list)
    """Param keys that must be present"""

    values: dict[str, Any] = Field(default_factory=dict)
    """Param values that must be equal"""

    when: str | bool | None = None
    """Named condition (or literal) that must hold"""

    unless: str | bool | None = None
    """Named condition (or literal) that must not hold"""

    force: bool = False
    """Apply whenever the conditions hold"""

    def match_spec(self) -> MatchSpec:
        return MatchSpec.build(
            *self.presence,
            values=self.values,
            when=self.when,
            unless=self.unless,
            force=self.force,
        )


class RuleEntry(MatchEntry):
    """A query rule."""

    action: str
    """Import path of ``action(session, *values)``"""

    order: str | float | None = None
    """first, last, default or a number"""

    name: str | None = None

    @field_validator("order")
    @classmethod
    def _check_order(cls, order: str | float | None) -> str | float | None:
        try:
            order_value(order)
        except TypeError as e:
            raise ValueError(str(e)) from e
        return order


class GuardEntry(BaseModel):
    """A guard: an imported predicate, required params, or both."""

    predicate: str | None = None
    """Import path of ``predicate(session)``"""

    require: list[str] = Field(default_factory=list)
    """Params that must be present"""

    message: str | None = None

    @model_validator(mode="after")
    def _check_target(self) -> GuardEntry:
        if not self.predicate and not self.require:
            raise ValueError("guard needs 'predicate' or 'require'")
        return self


class LevelEntry(BaseModel):
    """Registrations shared by the family root and its facets."""

    subject: str | None = None
    """Import path of ``builder(session, previous)``"""

    defaults: dict[str, Any] | str | None = None
    """Literal defaults, or the import path of a deferred defaults callable"""

    attributes: list[str] = Field(default_factory=list)
    conditions: dict[str, str] = Field(default_factory=dict)
    rules: list[RuleEntry] = Field(default_factory=list)
    guards: list[GuardEntry] = Field(default_factory=list)
    facets: list["FacetEntry"] = Field(default_factory=list)


class FacetEntry(LevelEntry, MatchEntry):
    """A sift facet."""

    name: str


class FamilyEntry(LevelEntry):
    """The top-level rule family."""

    name: str = "configuration"
    raise_on_guard_violation: bool | None = None


LevelEntry.model_rebuild()
FacetEntry.model_rebuild()
FamilyEntry.model_rebuild()


def _register_level(configuration: Configuration, entry: LevelEntry) -> None:
    """Register everything a level declares on a configuration."""
    if entry.subject:
        configuration.subject(import_object(entry.subject))
    if isinstance(entry.defaults, str):
        configuration.defaults(import_object(entry.defaults))
    elif entry.defaults:
        configuration.defaults(entry.defaults)
    if entry.attributes:
        configuration.attributes(*entry.attributes)
    for condition_name, path in entry.conditions.items():
        configuration.condition(condition_name, import_object(path))

    for rule in entry.rules:
        configuration.add_rule(rule.match_spec(), import_object(rule.action), order=rule.order, name=rule.name)

    for guard in entry.guards:
        if guard.predicate:
            configuration.add_guard(import_object(guard.predicate), guard.message)
        if guard.require:
            message = guard.message or f"missing required params: {', '.join(guard.require)}"
            configuration.add_guard(has_param(*guard.require), message)

    for facet in entry.facets:
        configuration.add_facet(facet.match_spec(), _facet_body(facet), name=facet.name)


def _facet_body(entry: FacetEntry) -> Any:
    def body(child: Configuration, *_values: Any) -> None:
        _register_level(child, entry)

    body.__name__ = entry.name
    return body


def _check_imports(entry: LevelEntry) -> None:
    paths = [entry.subject] if entry.subject else []
    if isinstance(entry.defaults, str):
        paths.append(entry.defaults)
    paths.extend(entry.conditions.values())
    paths.extend(rule.action for rule in entry.rules)
    paths.extend(guard.predicate for guard in entry.guards if guard.predicate)
    for path in paths:
        import_object(path)
    for facet in entry.facets:
        _check_imports(facet)


def build_configuration(data: dict[str, Any]) -> Configuration:
    """Build a configuration from a parsed ``facetflow`` section.

    Raises:
        ConfigurationLoadError: If the data is invalid or an import fails
    """
    try:
        entry = FamilyEntry.model_validate(data)
    except ValidationError as e:
        raise ConfigurationLoadError(f"Invalid rule family: {e}") from e

    # Facet bodies run lazily; resolve every import path up front.
    _check_imports(entry)

    configuration = Configuration(entry.name, raise_on_guard_violation=entry.raise_on_guard_violation)
    _register_level(configuration, entry)
    return configuration


def load_configuration(yaml_path: Path) -> Configuration:
    """Load a rule family from a YAML file.

    Args:
        yaml_path: File with a top-level ``facetflow`` section

    Returns:
        Frozen Configuration

    Raises:
        ConfigurationLoadError: If the file is missing or invalid
    """
    if not yaml_path.exists():
        raise ConfigurationLoadError(f"Rule family file not found: {yaml_path}")

    with yaml_path.open() as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationLoadError(f"Invalid YAML in {yaml_path}: {e}") from e

    section = data.get("facetflow") if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ConfigurationLoadError(f"{yaml_path} has no 'facetflow' section")

    configuration = build_configuration(section)
    logger.info(
        "Loaded rule family '%s' from %s (%d rules, %d facets, %d guards)",
        configuration.name,
        yaml_path,
        len(configuration.rules),
        len(configuration.facets),
        len(configuration.guards),
    )
    return configuration.freeze()
