"""Hierarchical dependency injection container.

Tokens (strings, dotted paths or classes) map to recipes describing how to
build a value. A `Container` builds each token lazily, once, and a child
container built on top of a parent overrides some tokens while sharing every
instance its overrides do not reach.

Exports:
- `Container`: the container; `Container.token` and `Container.value` build
  forwarding and value-wrapper recipes.
- `Injection`: explicit ``(build, *dependencies)`` recipe.
- `Token`, `Value`: recipe markers returned by `Container.token` / `Container.value`.
- `InlineInjections`: protocol for classes declaring their own dependencies
  through ``__inject__``.
- `ResolutionError` and its subclasses `NoSuchToken`, `TokenNotResolved`,
  `CyclicDependency`.
"""

from ._container import Container, CyclicDependency, NoSuchToken, ResolutionError, TokenNotResolved
from ._injection import Injection, InlineInjections, Token, Value


__all__ = [
    "Container",
    "CyclicDependency",
    "Injection",
    "InlineInjections",
    "NoSuchToken",
    "ResolutionError",
    "Token",
    "TokenNotResolved",
    "Value",
]
