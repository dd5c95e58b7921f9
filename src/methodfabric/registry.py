"""Declarative method registry for the methodfabric dispatcher.

A ``MethodDefinition`` describes one remote endpoint: its name and aliases,
HTTP verb, path template and the parameters it accepts. The ``MethodRegistry``
is an immutable catalog of definitions, looked up by name or alias. It is
built once, typically from a static data table, and shared read-only by every
call of every client that uses it.
"""

from collections.abc import Iterable, Iterator, Mapping
from string import Formatter
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .exceptions import ConfigurationError, UnknownMethodError
from .log_config import logger

HttpVerb = Literal["GET", "POST", "PUT", "DELETE"]


def path_placeholders(template: str) -> list[str]:
    """Returns the ``{name}`` placeholders of a path template, in order."""
    return [field for _, field, _, _ in Formatter().parse(template) if field]


class MethodDefinition(BaseModel):
    """Declarative description of one remote API method.

    Attributes:
        name: Canonical method name.
        aliases: Alternative names resolving to this definition.
        http_verb: HTTP method used to call the endpoint.
        path_template: Path relative to the base URL, with ``{param}`` placeholders.
        required_params: Parameters that must be supplied, in positional order.
        optional_params: Parameters that may be supplied by name.
        identity_params: A group of parameters any one of which satisfies a single
            logical required slot (e.g. ``id``, ``user_id`` or ``screen_name``).
        requires_authentication: The endpoint refuses anonymous calls.
        deprecated: The endpoint is scheduled for removal by the provider.
        description: Free-form documentation.
        legacy_path_template: Alternate path used when the caller opts into
            legacy behavior with the ``_legacy`` synthetic argument.
    """

    name: str
    aliases: frozenset[str] = frozenset()
    http_verb: HttpVerb = "GET"
    path_template: str
    required_params: tuple[str, ...] = ()
    optional_params: frozenset[str] = frozenset()
    identity_params: tuple[str, ...] = ()
    requires_authentication: bool = False
    deprecated: bool = False
    description: str = ""
    legacy_path_template: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def check_parameter_sets(self) -> "MethodDefinition":
        """Validates that parameter groups are disjoint and cover the path."""
        required = set(self.required_params)
        if len(required) != len(self.required_params):
            raise ValueError(f"{self.name}: duplicate required parameter")
        overlap = required & self.optional_params
        if overlap:
            raise ValueError(
                f"{self.name}: parameters both required and optional: {sorted(overlap)}"
            )
        identity_overlap = set(self.identity_params) & required
        if identity_overlap:
            raise ValueError(
                f"{self.name}: identity parameters also required: {sorted(identity_overlap)}"
            )
        if self.name in self.aliases:
            raise ValueError(f"{self.name}: name repeated in its own aliases")
        for template in (self.path_template, self.legacy_path_template):
            if template is None:
                continue
            undeclared = set(path_placeholders(template)) - self.parameter_names
            if undeclared:
                raise ValueError(
                    f"{self.name}: path placeholders not declared as parameters: {sorted(undeclared)}"
                )
        return self

    @property
    def parameter_names(self) -> frozenset[str]:
        """All parameter names the method accepts."""
        return (
            frozenset(self.required_params)
            | self.optional_params
            | frozenset(self.identity_params)
        )

    @property
    def all_names(self) -> frozenset[str]:
        """The canonical name together with every alias."""
        return frozenset([self.name]) | self.aliases


class MethodRegistry:
    """Immutable catalog of MethodDefinitions, looked up by name or alias.

    Names and aliases are unique across the whole registry. Once constructed
    the registry cannot be modified, so one instance may be shared across
    clients and concurrent calls without locking.
    """

    def __init__(self, definitions: Iterable[MethodDefinition]):
        definitions_by_name: dict[str, MethodDefinition] = {}
        lookup: dict[str, MethodDefinition] = {}
        for definition in definitions:
            for name in sorted(definition.all_names):
                if name in lookup:
                    raise ConfigurationError(
                        f"Method name or alias '{name}' is declared by both "
                        f"'{lookup[name].name}' and '{definition.name}'"
                    )
                lookup[name] = definition
            definitions_by_name[definition.name] = definition

        self._definitions: Mapping[str, MethodDefinition] = MappingProxyType(
            definitions_by_name
        )
        self._lookup: Mapping[str, MethodDefinition] = MappingProxyType(lookup)
        logger.debug(
            f"MethodRegistry built with {len(self._definitions)} methods "
            f"and {len(self._lookup) - len(self._definitions)} aliases"
        )

    @classmethod
    def from_table(cls, rows: Iterable[Mapping[str, Any]]) -> "MethodRegistry":
        """Builds a registry from plain data rows (e.g. decoded JSON or YAML).

        Args:
            rows: One mapping per method, with MethodDefinition field names as keys.

        Returns:
            MethodRegistry: The validated registry.

        Raises:
            ConfigurationError: If a row is invalid or a name is declared twice.
        """
        definitions: list[MethodDefinition] = []
        for row in rows:
            try:
                definitions.append(MethodDefinition.model_validate(row))
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid method definition {row.get('name', '<unnamed>')!r}: {e}"
                ) from e
        return cls(definitions)

    def get(self, name_or_alias: str) -> MethodDefinition:
        """Resolves a method name or alias to its canonical definition.

        Raises:
            UnknownMethodError: If neither a name nor an alias matches.
        """
        try:
            return self._lookup[name_or_alias]
        except KeyError:
            raise UnknownMethodError(
                f"unknown method: {name_or_alias}", method_name=name_or_alias
            ) from None

    def names(self) -> list[str]:
        """Canonical method names, sorted."""
        return sorted(self._definitions)

    def __contains__(self, name_or_alias: object) -> bool:
        return name_or_alias in self._lookup

    def __iter__(self) -> Iterator[MethodDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"MethodRegistry({len(self)} methods)"
