"""
Cut reference cycles before encoding, and restore them after decoding.

The serialized format is a tree, so a value graph containing cycles is first
normalized into an acyclic copy: each reference back to a container that is an
ancestor of the reference (on the path from the root) is replaced with a
`CircularReference` holding the `Locator` of that ancestor. After decoding,
`restore_references()` resolves the locators and puts the referenced
containers back in place.

Only ancestors are detected. A container that is referenced from two sibling
branches without a cycle is copied once per branch, so decoding produces two
equal, but distinct, containers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import partial
from itertools import islice
from typing import TYPE_CHECKING, Callable, Final, Iterable, Union

from segserialize._errors import CircularLocatorError
from segserialize.constants import Composite
from segserialize.jstypes.jsmap import JSMap
from segserialize.jstypes.jsset import JSSet

if TYPE_CHECKING:
    from typing_extensions import TypeAlias

    from segserialize.registry import TypeRegistry


@dataclass(frozen=True, slots=True)
class MapKeyStep:
    """Select the key of the `index`-th entry of a map."""

    index: int


@dataclass(frozen=True, slots=True)
class MapValueStep:
    """Select the value of the `index`-th entry of a map."""

    index: int


@dataclass(frozen=True, slots=True)
class SetMemberStep:
    """Select the `index`-th member of a set."""

    index: int


LocatorStep: TypeAlias = Union[str, int, MapKeyStep, MapValueStep, SetMemberStep]
"""One step of a Locator: an object key (str), an array index (int) or a
positional map/set step."""

Locator: TypeAlias = "tuple[LocatorStep, ...]"
"""The path from the root of a serialized value to one of its containers."""

_JSON_STEP_FLAGS: Final = (
    ("_map_key", MapKeyStep),
    ("_map_value", MapValueStep),
    ("_map_set", SetMemberStep),
)


@dataclass(frozen=True, slots=True)
class CircularReference:
    """A placeholder for a reference to an ancestor container.

    >>> CircularReference(('a', 0, MapValueStep(1))).to_json()
    ['a', 0, {'_map_value': True, 'index': 1}]
    """

    locator: Locator

    def to_json(self) -> list[object]:
        steps: list[object] = []
        for step in self.locator:
            if isinstance(step, (str, int)):
                steps.append(step)
                continue
            for flag, step_type in _JSON_STEP_FLAGS:
                if isinstance(step, step_type):
                    steps.append({flag: True, "index": step.index})
                    break
        return steps

    @classmethod
    def from_json(cls, steps: object) -> CircularReference:
        """Create a CircularReference from the JSON form of its locator.

        Raises
        ------
        ValueError
            If `steps` is not a list of valid locator steps.
        """
        if not isinstance(steps, list):
            raise ValueError(f"Locator must be a list: {steps!r}")
        return cls(tuple(_step_from_json(step) for step in steps))


def _step_from_json(step: object) -> LocatorStep:
    if isinstance(step, str) or (isinstance(step, int) and not isinstance(step, bool)):
        return step
    if isinstance(step, dict):
        index = step.get("index")
        if type(index) is int and index >= 0:
            for flag, step_type in _JSON_STEP_FLAGS:
                if step.get(flag) is True:
                    return step_type(index)
    raise ValueError(f"Invalid locator step: {step!r}")


Assign = Callable[[object], object]


@dataclass(slots=True)
class ReferenceNormalizer:
    """Copy a value graph, replacing references to ancestors with CircularReference.

    The traversal uses an explicit work stack rather than recursion, so the
    depth of the graph is not limited by the Python call stack. `ancestors`
    holds exactly the containers on the path from the root to the value being
    visited: a container is added when it's entered, and removed by a task that
    runs after all of its descendants, so containers on other branches are never
    treated as ancestors.
    """

    registry: TypeRegistry
    work: list[Callable[[], object]] = field(default_factory=list)
    ancestors: dict[int, Locator] = field(default_factory=dict)

    def normalize(self, value: object) -> object:
        result: list[object] = []
        self.visit(value, (), result.append)
        while self.work:
            self.work.pop()()
        return result[0]

    def schedule(self, value: object, locator: Locator, assign: Assign) -> None:
        self.work.append(partial(self.visit, value, locator, assign))

    def leave(self, value: object) -> None:
        del self.ancestors[id(value)]

    def visit(self, value: object, locator: Locator, assign: Assign) -> None:
        composite = self.registry.match(value).composite
        if composite is None:
            assign(value)
            return

        ancestor_locator = self.ancestors.get(id(value))
        if ancestor_locator is not None:
            assign(CircularReference(ancestor_locator))
            return
        self.ancestors[id(value)] = locator
        # The work is a stack, so this runs after the tasks scheduled below
        self.work.append(partial(self.leave, value))

        if composite is Composite.ARRAY:
            items = list(value)  # type: ignore[call-overload]
            array: list[object] = [None] * len(items)
            assign(array)
            for i in reversed(range(len(items))):
                self.schedule(items[i], (*locator, i), partial(array.__setitem__, i))
        elif composite is Composite.OBJECT:
            assert isinstance(value, dict)
            obj: dict[str, object] = dict.fromkeys(value)
            assign(obj)
            for key, child in reversed(value.items()):
                self.schedule(child, (*locator, key), partial(obj.__setitem__, key))
        elif composite is Composite.MAP:
            assert isinstance(value, Mapping)
            entries = list(value.items())
            pairs = [[None, None] for _ in entries]
            self.work.append(lambda: assign(JSMap((k, v) for k, v in pairs)))
            for i in reversed(range(len(entries))):
                key, child = entries[i]
                self.schedule(
                    child, (*locator, MapValueStep(i)), partial(pairs[i].__setitem__, 1)
                )
                self.schedule(
                    key, (*locator, MapKeyStep(i)), partial(pairs[i].__setitem__, 0)
                )
        else:
            assert composite is Composite.SET
            members = list(value)  # type: ignore[call-overload]
            normalized: list[object] = [None] * len(members)
            self.work.append(lambda: assign(JSSet(normalized)))
            for i in reversed(range(len(members))):
                self.schedule(
                    members[i],
                    (*locator, SetMemberStep(i)),
                    partial(normalized.__setitem__, i),
                )


def normalize_references(value: object, *, registry: TypeRegistry) -> object:
    """
    Create an acyclic copy of a value, with cycles replaced by CircularReference.

    Containers are the values whose type descriptor in `registry` is composite.
    They are copied as `list`, `dict`, `JSMap` or `JSSet`; other values are
    used as-is.

    >>> from segserialize.registry import default_type_registry
    >>> a = {'name': 'a'}
    >>> a['self'] = a
    >>> normalize_references(a, registry=default_type_registry)
    {'name': 'a', 'self': CircularReference(locator=())}

    Raises
    ------
    UnsupportedTypeError
        If a value in the graph is not matched by any type descriptor.
    """
    return ReferenceNormalizer(registry).normalize(value)


def _nth(values: Iterable[object], index: int) -> object:
    if index < 0:
        raise IndexError(index)
    for value in islice(values, index, None):
        return value
    raise IndexError(index)


def resolve_locator(root: object, locator: Locator) -> object:
    """
    Get the container a Locator points to, starting from `root`.

    >>> resolve_locator({'a': [JSMap([(1, 'x')])]}, ('a', 0, MapValueStep(0)))
    'x'

    Raises
    ------
    CircularLocatorError
        If a step does not exist in, or cannot apply to, the container it
        reaches.
    """
    node = root
    for step in locator:
        try:
            if isinstance(step, str) and isinstance(node, dict):
                node = node[step]
            elif (
                isinstance(step, int)
                and not isinstance(step, bool)
                and isinstance(node, list)
                and step >= 0
            ):
                node = node[step]
            elif isinstance(step, MapKeyStep) and isinstance(node, JSMap):
                node = _nth(node.keys(), step.index)
            elif isinstance(step, MapValueStep) and isinstance(node, JSMap):
                node = _nth(node.values(), step.index)
            elif isinstance(step, SetMemberStep) and isinstance(node, JSSet):
                node = _nth(node, step.index)
            else:
                raise CircularLocatorError(
                    f"Locator step {step!r} cannot be applied to a "
                    f"{type(node).__name__}",
                    locator=locator,
                )
        except (KeyError, IndexError) as e:
            raise CircularLocatorError(
                f"Locator step {step!r} does not exist", locator=locator
            ) from e
    return node


def _resolve_entry(root: object, value: object) -> object:
    if isinstance(value, CircularReference):
        return resolve_locator(root, value.locator)
    return value


def restore_references(value: object) -> object:
    """
    Replace the CircularReferences in a decoded value with the containers they locate.

    The value is modified in place and returned. `JSMap` and `JSSet` containers
    holding references are emptied and re-filled in their original order, with
    each reference substituted.

    >>> a = {'name': 'a', 'self': CircularReference(())}
    >>> restored = restore_references(a)
    >>> restored['self'] is restored
    True

    Raises
    ------
    CircularLocatorError
        If a CircularReference's locator cannot be resolved.
    """
    if isinstance(value, CircularReference):
        raise CircularLocatorError(
            "The root value cannot be a CircularReference", locator=value.locator
        )

    pending = [value]
    while pending:
        node = pending.pop()
        if type(node) is dict:
            for key, child in list(node.items()):
                if isinstance(child, CircularReference):
                    node[key] = resolve_locator(value, child.locator)
                else:
                    pending.append(child)
        elif type(node) is list:
            for i, child in enumerate(list(node)):
                if isinstance(child, CircularReference):
                    node[i] = resolve_locator(value, child.locator)
                else:
                    pending.append(child)
        elif isinstance(node, JSMap):
            entries = list(node.items())
            if any(
                isinstance(k, CircularReference) or isinstance(v, CircularReference)
                for k, v in entries
            ):
                restored = [
                    (_resolve_entry(value, k), _resolve_entry(value, v))
                    for k, v in entries
                ]
                node.clear()
                node.update(restored)
            for k, v in entries:
                if not isinstance(k, CircularReference):
                    pending.append(k)
                if not isinstance(v, CircularReference):
                    pending.append(v)
        elif isinstance(node, JSSet):
            members = list(node)
            if any(isinstance(m, CircularReference) for m in members):
                restored_members = [_resolve_entry(value, m) for m in members]
                node.clear()
                node |= restored_members
            pending.extend(m for m in members if not isinstance(m, CircularReference))
    return value
