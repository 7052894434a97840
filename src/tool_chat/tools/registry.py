from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Iterator, Optional

from tool_chat.core.errors import (
    ArgumentParseError,
    DuplicateNameError,
    FatalToolError,
    ToolExecutionError,
    UnknownToolError,
)
from tool_chat.tools.definitions import ToolDefinition

logger = logging.getLogger(__name__)


def _matches_json_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "object":
        return isinstance(value, dict)
    if expected == "array":
        return isinstance(value, list)
    if expected == "null":
        return value is None
    return False


def parse_arguments(tool: ToolDefinition, raw_arguments: Optional[str]) -> dict[str, Any]:
    """
    Decode the model's JSON arguments and check them against the tool's
    parameter schema.

    Only a subset of JSON Schema is enforced: the payload must be an object,
    required properties must be present, undeclared properties are rejected
    unless ``additionalProperties`` is true, and each declared ``type`` (a
    string or a list of strings) must match.

    Raises:
        ArgumentParseError: on any of the failures above.
    """
    text = (raw_arguments or "").strip()
    if not text:
        args: Any = {}
    else:
        try:
            args = json.loads(text)
        except json.JSONDecodeError as e:
            raise ArgumentParseError(tool.name, f"malformed JSON ({e.msg})") from e

    if not isinstance(args, dict):
        raise ArgumentParseError(tool.name, f"expected a JSON object, got {type(args).__name__}")

    schema = tool.parameters or {}
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    required = schema.get("required")
    if not isinstance(required, list):
        required = []

    missing = [name for name in required if name not in args]
    if missing:
        raise ArgumentParseError(tool.name, f"missing required argument(s): {', '.join(missing)}")

    if schema.get("additionalProperties") is not True:
        unknown = [k for k in args if k not in properties]
        if unknown:
            raise ArgumentParseError(tool.name, f"unknown argument(s): {', '.join(unknown)}")

    for key, val in args.items():
        prop = properties.get(key)
        if not isinstance(prop, dict) or prop.get("type") is None:
            continue
        expected = prop["type"]
        allowed = expected if isinstance(expected, list) else [expected]
        if not any(_matches_json_type(val, t) for t in allowed if isinstance(t, str)):
            raise ArgumentParseError(
                tool.name, f"argument '{key}' has wrong type; expected {expected}"
            )

    return args


class ToolRegistry:
    """
    Name -> ToolDefinition catalog shared read-only by the conversation loop.

    Usage::

        registry = ToolRegistry()
        registry.register("get_weather", "Get the weather.", schema, get_weather)
        result = registry.invoke("get_weather", '{"location": "Tokyo"}')
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    @classmethod
    def from_definitions(cls, definitions: Iterable[ToolDefinition]) -> "ToolRegistry":
        registry = cls()
        for d in definitions:
            registry.add(d)
        return registry

    def register(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any],
        handler: Callable[..., str],
    ) -> ToolDefinition:
        definition = ToolDefinition(
            name=name,
            description=description,
            parameters=parameters,
            handler=handler,
        )
        self.add(definition)
        return definition

    def add(self, definition: ToolDefinition) -> None:
        if definition.name in self._tools:
            raise DuplicateNameError(definition.name)
        self._tools[definition.name] = definition

    def resolve(self, name: str) -> ToolDefinition:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def invoke(self, name: str, raw_arguments: Optional[str]) -> str:
        """
        Resolve ``name``, validate ``raw_arguments`` and run the handler.

        Raises:
            UnknownToolError: no tool with that name.
            ArgumentParseError: arguments are malformed; the handler is not run.
            ToolExecutionError: the handler raised. Not retryable when the
                handler raised FatalToolError or an error flagged
                ``retryable=False`` (e.g. a terminal TransportError from a
                nested LLM call).
        """
        tool = self.resolve(name)
        args = parse_arguments(tool, raw_arguments)

        logger.debug("Invoking tool %s with %s", name, args)
        try:
            result = tool.handler(**args)
        except FatalToolError as e:
            raise ToolExecutionError(name, e, retryable=False) from e
        except Exception as e:
            retryable = getattr(e, "retryable", True) is not False
            raise ToolExecutionError(name, e, retryable=retryable) from e

        return result if isinstance(result, str) else str(result)

    def catalog(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self.catalog())
