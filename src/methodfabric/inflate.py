"""Inflation of decoded payloads into read-only typed views.

Inflation is additive: every key of the decoded payload stays available,
date-bearing fields are parsed into aware datetimes (with a derived
``relative_<field>`` rendering such as "about an hour ago"), URL-bearing
fields are parsed into ``httpx.URL`` values, and nested objects and lists
are inflated recursively. A field that is absent or cannot be parsed is left
untouched; inflation never fails a call.
"""

from collections.abc import Callable, Iterator, Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from .log_config import logger

TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"
RELATIVE_PREFIX = "relative_"


class InflationSchema(BaseModel):
    """Which fields of a payload carry dates and URLs."""

    date_fields: frozenset[str] = frozenset(["created_at"])
    url_fields: frozenset[str] = frozenset(
        [
            "url",
            "expanded_url",
            "profile_image_url",
            "profile_image_url_https",
            "profile_background_image_url",
            "profile_banner_url",
        ]
    )

    model_config = ConfigDict(frozen=True)


def parse_timestamp(value: str) -> datetime:
    """Parses provider timestamps: ``Wed Aug 27 13:08:45 +0000 2008``, ISO 8601 or RFC 2822.

    Raises:
        ValueError: If no supported format matches.
    """
    try:
        return datetime.strptime(value, TWITTER_DATE_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Unrecognized timestamp: {value!r}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def relative_age(moment: datetime, now: datetime | None = None) -> str:
    """Renders how long ago ``moment`` was, e.g. "about 2 hours ago"."""
    now = now or datetime.now(UTC)
    delta = (now - moment).total_seconds()
    if delta < 60:
        return "less than a minute ago"
    if delta < 120:
        return "about a minute ago"
    if delta < 45 * 60:
        return f"{int(delta // 60)} minutes ago"
    if delta < 120 * 60:
        return "about an hour ago"
    if delta < 24 * 60 * 60:
        return f"about {int(delta // 3600)} hours ago"
    if delta < 48 * 60 * 60:
        return "1 day ago"
    return f"{int(delta // 86400)} days ago"


class InflatedObject(Mapping[str, Any]):
    """A read-only view over one inflated JSON object.

    Values are reachable both as mapping items and as attributes. For every
    inflated date field ``<field>``, ``relative_<field>`` renders its age
    relative to the current time.
    """

    __slots__ = ("_data", "_dates", "_clock")

    def __init__(
        self,
        data: dict[str, Any],
        dates: frozenset[str] = frozenset(),
        clock: Callable[[], datetime] | None = None,
    ):
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_dates", dates)
        object.__setattr__(self, "_clock", clock)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        if name in InflatedObject.__slots__ or name.startswith("__"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            pass
        if name.startswith(RELATIVE_PREFIX):
            field = name[len(RELATIVE_PREFIX) :]
            if field in self._dates:
                now = self._clock() if self._clock else None
                return relative_age(self._data[field], now)
        raise AttributeError(
            f"{type(self).__name__} has no attribute {name!r}"
        ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        """A plain copy of the inflated data (nested objects stay inflated)."""
        return dict(self._data)


class ResponseInflator:
    """Inflates decoded payloads according to an InflationSchema.

    Args:
        schema: Default schema used for every method.
        method_schemas: Per-method schemas keyed by canonical method name.
        clock: Returns "now" for relative ages; defaults to the current UTC time.
    """

    def __init__(
        self,
        schema: InflationSchema | None = None,
        method_schemas: Mapping[str, InflationSchema] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._schema = schema or InflationSchema()
        self._method_schemas = dict(method_schemas or {})
        self._clock = clock

    def schema_for(self, method_name: str | None) -> InflationSchema:
        if method_name is not None and method_name in self._method_schemas:
            return self._method_schemas[method_name]
        return self._schema

    def inflate(self, payload: Any, method_name: str | None = None) -> Any:
        """Returns the inflated form of a decoded payload.

        Lists are inflated element-wise and dicts become InflatedObjects;
        scalars are returned as they are.
        """
        return self._inflate_value(payload, self.schema_for(method_name))

    def _inflate_value(self, value: Any, schema: InflationSchema) -> Any:
        if isinstance(value, dict):
            return self._inflate_object(value, schema)
        if isinstance(value, list):
            return [self._inflate_value(item, schema) for item in value]
        return value

    def _inflate_object(
        self, data: dict[str, Any], schema: InflationSchema
    ) -> InflatedObject:
        inflated: dict[str, Any] = {}
        dates: set[str] = set()
        for key, value in data.items():
            if key in schema.date_fields and isinstance(value, str):
                try:
                    inflated[key] = parse_timestamp(value)
                    dates.add(key)
                    continue
                except ValueError as e:
                    logger.warning(f"Leaving field '{key}' uninflated: {e}")
            elif key in schema.url_fields and isinstance(value, str) and value:
                try:
                    inflated[key] = httpx.URL(value)
                    continue
                except httpx.InvalidURL as e:
                    logger.warning(f"Leaving field '{key}' uninflated: {e}")
            inflated[key] = self._inflate_value(value, schema)
        return InflatedObject(inflated, frozenset(dates), self._clock)
