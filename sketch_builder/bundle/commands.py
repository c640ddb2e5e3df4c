"""Fold manifest commands into one compilation target per script."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Literal, Mapping, Tuple, Union

from ..errors import ManifestError
from ..schemas.manifest import CommandSpec

DEFAULT_HANDLER = "onRun"
MAX_HANDLER_DEPTH = 32

TargetKind = Literal["command", "resource"]


@dataclass(frozen=True, slots=True)
class HandlerName:
    name: str


@dataclass(frozen=True, slots=True)
class HandlerList:
    names: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class HandlerGroup:
    members: Tuple[Tuple[str, "HandlerNode"], ...]


HandlerNode = Union[HandlerName, HandlerList, HandlerGroup]


@dataclass(slots=True)
class CompilationTarget:
    """A distinct script scheduled for bundling."""

    script: str
    handlers: List[str] = field(default_factory=list)
    identifiers: List[str] = field(default_factory=list)
    kind: TargetKind = "command"


def parse_handlers(raw: Any, *, depth: int = 0) -> HandlerNode:
    """Convert the raw JSON ``handlers`` value into a handler tree."""

    if depth > MAX_HANDLER_DEPTH:
        raise ManifestError(f"Handler structure nested deeper than {MAX_HANDLER_DEPTH} levels")
    if isinstance(raw, str):
        return HandlerName(raw)
    if isinstance(raw, (list, tuple)):
        names = []
        for item in raw:
            if not isinstance(item, str):
                raise ManifestError(f"Handler lists may only contain names, got {item!r}")
            names.append(item)
        return HandlerList(tuple(names))
    if isinstance(raw, Mapping):
        return HandlerGroup(
            tuple((str(label), parse_handlers(value, depth=depth + 1)) for label, value in raw.items())
        )
    raise ManifestError(f"Unsupported handler value: {raw!r}")


def flatten_handlers(node: HandlerNode, *, depth: int = 0) -> Iterator[str]:
    """Yield every handler name of *node* in discovery order."""

    if depth > MAX_HANDLER_DEPTH:
        raise ManifestError(f"Handler structure nested deeper than {MAX_HANDLER_DEPTH} levels")
    if isinstance(node, HandlerName):
        yield node.name
    elif isinstance(node, HandlerList):
        yield from node.names
    else:
        for _, member in node.members:
            yield from flatten_handlers(member, depth=depth + 1)


def collect_targets(commands: Iterable[CommandSpec]) -> list[CompilationTarget]:
    """Return one target per distinct script, in first-seen order."""

    targets: dict[str, CompilationTarget] = {}
    for command in commands:
        target = targets.get(command.script)
        if target is None:
            target = targets[command.script] = CompilationTarget(script=command.script)

        if command.handler:
            target.handlers.append(command.handler)
        elif command.handlers is not None:
            target.handlers.extend(flatten_handlers(parse_handlers(command.handlers)))

        if DEFAULT_HANDLER not in target.handlers:
            target.handlers.append(DEFAULT_HANDLER)
        if command.identifier:
            target.identifiers.append(command.identifier)

    return list(targets.values())


def resource_targets(resources: Iterable[str]) -> list[CompilationTarget]:
    return [CompilationTarget(script=resource, kind="resource") for resource in resources]
