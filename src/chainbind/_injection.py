from __future__ import annotations

import functools
import inspect
import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Protocol,
    runtime_checkable,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Sequence
    from typing import Union

    # A nested namespace: token -> Injection | Namespace
    Namespace = dict[Hashable, Union["Injection", "Namespace"]]


class Injection:
    """Normalized recipe: dependency tokens plus a build procedure.

    ``build`` is called with the resolved dependencies, in declared order.

    Example:
      Injection(lambda db, cfg: Repo(db, cfg), "db", "config")

    """

    __slots__ = ("build", "dependencies")

    def __init__(self, build: Callable[..., object], *dependencies: Any) -> None:
        self.build = build
        self.dependencies: tuple[Any, ...] = dependencies

    def __repr__(self) -> str:
        return f"Injection({self.build!r}, dependencies={self.dependencies!r})"


@dataclass(frozen=True)
class Token:
    """Forward to another token: the value is whatever that token resolves to."""

    token: Any


@dataclass(frozen=True)
class Value:
    """Use ``value`` verbatim, even when it is a class or a callable."""

    value: Any


@runtime_checkable
class InlineInjections(Protocol):
    """A class (or callable) declaring its own constructor dependencies.

    Each entry is either a token or a mapping ``{token: fallback}``; the
    fallback is used in place of ``token`` when the requesting container has
    no entry for it.
    """

    __inject__: ClassVar[Sequence[Any]]


def canonical_key(key: Any) -> Any:
    """Intern string keys; other tokens are used as they are."""
    if isinstance(key, str):
        return sys.intern(key)
    return key


def lookup_token(table: Mapping[Any, Any], token: Any) -> Any:
    """Find ``token`` in a raw or normalized table.

    A direct key wins; a string token is then walked as a dotted path through
    nested mappings. Returns None when nothing is found.
    """
    found = table.get(canonical_key(token))
    if found is not None or not isinstance(token, str):
        return found

    level: Any = table
    for part in token.split("."):
        if not isinstance(level, Mapping):
            return None
        level = level.get(canonical_key(part))
        if level is None:
            return None
    return level


def normalize_injections(
    injections: Mapping[Any, Any],
    has_token: Callable[[Any], bool],
) -> Namespace:
    """Normalize a recipe table, recursing into nested mappings."""
    table: Namespace = {}
    for key, recipe in injections.items():
        if isinstance(recipe, Mapping):
            table[canonical_key(key)] = normalize_injections(recipe, has_token)
        else:
            injection = normalize_injection(recipe, has_token)
            if injection is not None:
                table[canonical_key(key)] = injection
    return table


def normalize_injection(  # noqa: PLR0911
    recipe: Any,
    has_token: Callable[[Any], bool],
) -> Injection | None:
    """Turn one recipe into an `Injection`; first matching rule wins.

    ``has_token`` answers whether the requesting container holds a token
    locally, and decides between a declared inline dependency and its fallback.
    Returns None only for a None recipe.
    """
    if isinstance(recipe, Injection):
        return recipe

    if isinstance(recipe, Token):
        return Injection(_forward, recipe.token)

    if isinstance(recipe, Value):
        value = recipe.value
        return Injection(lambda: value)

    if isinstance(recipe, tuple) and recipe and _is_constructable(recipe[0]):
        # classes and plain callables are both invoked with the resolved dependencies
        return Injection(recipe[0], *recipe[1:])

    if _is_constructable(recipe):
        return Injection(recipe, *_inline_dependencies(recipe, has_token))

    if recipe is None:
        return None

    if isinstance(recipe, tuple) and recipe:
        logger.warning("Tuple recipe %r has a non-callable head; using it as a literal value", recipe)

    return Injection(lambda: recipe)


def _forward(value: object) -> object:
    return value


def _is_constructable(obj: Any) -> bool:
    # callable instances are values, not factories
    return inspect.isclass(obj) or inspect.isroutine(obj) or isinstance(obj, functools.partial)


def _inline_dependencies(recipe: Any, has_token: Callable[[Any], bool]) -> list[Any]:
    if not isinstance(recipe, InlineInjections):
        return []

    dependencies: list[Any] = []
    for entry in recipe.__inject__:
        if isinstance(entry, Mapping):
            dependencies.extend(
                token if has_token(token) else _fallback_token(fallback, has_token) for token, fallback in entry.items()
            )
        else:
            dependencies.append(entry)
    return dependencies


def _fallback_token(fallback: Any, has_token: Callable[[Any], bool]) -> Any:
    # a class stays a token so it is shared with direct lookups of that class;
    # any other recipe becomes an Injection that resolves as its own token
    if inspect.isclass(fallback):
        return fallback
    return normalize_injection(fallback, has_token)
