"""Argument binding for registry-driven method calls.

The binder turns the arguments of one call (positional values plus a map of
named values) into the canonical named parameter set of a MethodDefinition.
It validates required, optional and identity parameters, rejects unknown
keys so that typos are never silently dropped, and extracts synthetic
control arguments (keys with the reserved ``_`` prefix) which steer the
dispatcher itself and are never sent to the API.
"""

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import BindingError
from .log_config import logger
from .registry import MethodDefinition

SYNTHETIC_PREFIX = "_"
"""Keys starting with this prefix are synthetic control arguments."""

AUTHENTICATE_KEY = "_authenticate"
SINCE_KEY = "_since"
LEGACY_KEY = "_legacy"
KNOWN_SYNTHETIC_KEYS: frozenset[str] = frozenset(
    [AUTHENTICATE_KEY, SINCE_KEY, LEGACY_KEY]
)


class CallArguments(BaseModel):
    """The arguments of one call: positional values and named values.

    Attributes:
        positional: Values bound to required parameters in declaration order.
        named: Values bound by parameter name, including synthetic keys.
    """

    positional: tuple[Any, ...] = ()
    named: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_call(
        cls, args: Sequence[Any], kwargs: Mapping[str, Any] | None = None
    ) -> "CallArguments":
        """Splits ``*args``/``**kwargs`` of a call into CallArguments.

        If the last positional value is a mapping it is an options map: it is
        removed from the positional values and merged into the named values.
        Keyword arguments win over options-map entries with the same key.
        """
        positional = list(args)
        named: dict[str, Any] = {}
        if positional and isinstance(positional[-1], Mapping):
            named.update(positional.pop())
        if kwargs:
            named.update(kwargs)
        return cls(positional=tuple(positional), named=named)


class SyntheticArguments(BaseModel):
    """Synthetic control arguments extracted from a call.

    Attributes:
        authenticate: Force (True) or suppress (False) the Authorization
            header; None keeps the default behavior.
        since: Keep only result items created after this instant.
        legacy: Use the method's legacy path template, if it declares one.
        extra: Prefixed keys the dispatcher does not recognize.
    """

    authenticate: bool | None = None
    since: datetime | None = None
    legacy: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class BoundCall(BaseModel):
    """A call resolved against its MethodDefinition.

    Attributes:
        definition: The canonical definition the call was bound against.
        invoked_as: The name or alias the caller used.
        params: Endpoint parameters, positional bindings first.
        synthetic: Synthetic control arguments of the call.
    """

    definition: MethodDefinition
    invoked_as: str
    params: dict[str, Any]
    synthetic: SyntheticArguments = Field(default_factory=SyntheticArguments)

    model_config = ConfigDict(frozen=True)


def coerce_since(value: Any) -> datetime:
    """Converts a ``_since`` value to an aware datetime.

    Accepts datetimes (naive ones are taken as UTC), epoch seconds as numbers
    or digit strings, and ISO 8601 strings.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError(f"not a point in time: {value!r}")
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, UTC)
    if isinstance(value, str):
        if value.isdigit():
            return datetime.fromtimestamp(int(value), UTC)
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise ValueError(f"not a point in time: {value!r}")


class ParameterBinder:
    """Binds CallArguments to a MethodDefinition.

    Binding is a pure function of its inputs: the binder holds no state, and
    binding the same definition and arguments twice yields equal BoundCalls.
    """

    def bind(
        self,
        definition: MethodDefinition,
        arguments: CallArguments,
        invoked_as: str | None = None,
    ) -> BoundCall:
        """Resolves a call's arguments into a BoundCall.

        Args:
            definition: The canonical definition of the called method.
            arguments: Positional and named arguments of the call.
            invoked_as: The name or alias used by the caller, for error messages.

        Returns:
            BoundCall: The validated, canonical parameter set.

        Raises:
            BindingError: On surplus positional values, unknown parameters,
                parameters given twice, or missing required parameters.
        """
        method_name = invoked_as or definition.name
        named = dict(arguments.named)
        synthetic_raw = {
            key: named.pop(key)
            for key in list(named)
            if key.startswith(SYNTHETIC_PREFIX)
        }

        slots = self._positional_slots(definition)
        if len(arguments.positional) > len(slots):
            raise BindingError(
                f"too many positional arguments (expected at most {len(slots)}, "
                f"got {len(arguments.positional)})",
                method_name=method_name,
            )

        unknown = [key for key in named if key not in definition.parameter_names]
        if unknown:
            raise BindingError(
                f"unknown parameter: {', '.join(unknown)}", method_name=method_name
            )

        params: dict[str, Any] = {}
        for slot, value in zip(slots, arguments.positional):
            if slot in named:
                raise BindingError(
                    f"parameter given twice: {slot}", method_name=method_name
                )
            params[slot] = value
        params.update(named)

        for required in definition.required_params:
            if params.get(required) is None:
                raise BindingError(
                    f"missing required parameter: {required}", method_name=method_name
                )
        if definition.identity_params and not any(
            params.get(member) is not None for member in definition.identity_params
        ):
            raise BindingError(
                "missing required parameter: one of "
                + ", ".join(definition.identity_params),
                method_name=method_name,
            )

        return BoundCall(
            definition=definition,
            invoked_as=method_name,
            params=params,
            synthetic=self._extract_synthetic(synthetic_raw, method_name),
        )

    @staticmethod
    def _positional_slots(definition: MethodDefinition) -> list[str]:
        """Parameter names that positional values fill, in order."""
        slots = list(definition.required_params)
        if definition.identity_params:
            # One positional value past the required ones fills the identity slot.
            slots.append(definition.identity_params[0])
        elif not slots and len(definition.parameter_names) == 1:
            # Single-argument convenience form.
            slots = list(definition.parameter_names)
        return slots

    @staticmethod
    def _extract_synthetic(
        raw: dict[str, Any], method_name: str
    ) -> SyntheticArguments:
        extra = {k: v for k, v in raw.items() if k not in KNOWN_SYNTHETIC_KEYS}
        if extra:
            logger.warning(
                f"{method_name}: ignoring unrecognized synthetic arguments {sorted(extra)}"
            )

        since: datetime | None = None
        if raw.get(SINCE_KEY) is not None:
            try:
                since = coerce_since(raw[SINCE_KEY])
            except ValueError as e:
                raise BindingError(
                    f"invalid value for {SINCE_KEY}: {e}", method_name=method_name
                ) from e

        authenticate = raw.get(AUTHENTICATE_KEY)
        return SyntheticArguments(
            authenticate=None if authenticate is None else bool(authenticate),
            since=since,
            legacy=bool(raw.get(LEGACY_KEY, False)),
            extra=extra,
        )
