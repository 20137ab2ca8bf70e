"""Layered default parameters.

A configuration carries an ordered tuple of layers inherited from its
ancestors followed by its own. A layer is either a literal mapping or a
deferred callable that receives the params resolved so far, so one
default can be computed from another param.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from facetflow.pipeline.configuration import Configuration


DefaultsFn = Callable[[Mapping[str, Any]], Mapping[str, Any]]
DefaultsLayer = Union[Mapping[str, Any], DefaultsFn]


def freeze_layer(layer: DefaultsLayer) -> DefaultsLayer:
    """Snapshot a literal layer so later mutation of the caller's dict is ignored."""
    if isinstance(layer, Mapping):
        return MappingProxyType(dict(layer))
    if not callable(layer):
        raise TypeError(f"Defaults must be a mapping or a callable, got {type(layer).__name__}")
    return layer


def merge_layers(layers: tuple[DefaultsLayer, ...], explicit: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Merge default layers in order, later layers winning.

    Deferred layers are called with a read-only view of the defaults merged
    so far overlaid with the explicit params.

    Args:
        layers: Defaults layers, ancestor first
        explicit: Caller params, used only as input to deferred layers

    Returns:
        New dict of merged defaults (explicit params not included)
    """
    explicit = explicit or {}
    merged: dict[str, Any] = {}
    for layer in layers:
        if isinstance(layer, Mapping):
            merged.update(layer)
        else:
            merged.update(layer(MappingProxyType({**merged, **explicit})))
    return merged


def fetch_defaults(configuration: Configuration, explicit: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Resolve the defaults of a configuration.

    Args:
        configuration: Configuration whose layer chain to merge
        explicit: Caller params visible to deferred layers

    Returns:
        Merged defaults
    """
    return merge_layers(configuration.defaults_layers, explicit)


def resolve_params(configuration: Configuration, explicit: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Merge the defaults of a configuration under the explicit params."""
    explicit = explicit or {}
    return {**fetch_defaults(configuration, explicit), **explicit}
