"""Caller-supplied session attributes.

A configuration declares the attribute names it accepts (a current user,
a tenant, a clock…). Sessions are built with values for some of them;
anything undeclared is rejected.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from facetflow.errors import UnknownAttributeError


class Attributes(Mapping[str, Any]):
    """Read-only attribute values of a session.

    Declared but unsupplied attributes read as None.
    """

    def __init__(self, declared: Iterable[str], values: Mapping[str, Any] | None = None) -> None:
        """Validate and store attribute values.

        Args:
            declared: Attribute names the configuration accepts
            values: Supplied values

        Raises:
            UnknownAttributeError: If a supplied name is not declared
        """
        self._declared = tuple(declared)
        values = dict(values or {})
        unknown = [name for name in values if name not in self._declared]
        if unknown:
            raise UnknownAttributeError(unknown)
        self._values = values

    def get_attr(self, name: str) -> Any:
        """Read a declared attribute.

        Raises:
            UnknownAttributeError: If the name is not declared
        """
        if name not in self._declared:
            raise UnknownAttributeError([name])
        return self._values.get(name)

    def redeclare(self, declared: Iterable[str]) -> Attributes:
        """Carry the values over to a (possibly wider) declaration."""
        return Attributes(declared, self._values)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Attributes({self._values!r})"
