from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ._injection import (
    Injection,
    Token,
    Value,
    lookup_token,
    normalize_injection,
    normalize_injections,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Hashable

    from ._injection import Namespace

_MISSING = object()


class ResolutionError(RuntimeError):
    """Base class for container resolution failures."""


class NoSuchToken(ResolutionError, KeyError):  # noqa: N818
    """No injection exists for the token anywhere in the container chain."""

    def __str__(self) -> str:
        return BaseException.__str__(self)


class TokenNotResolved(ResolutionError):  # noqa: N818
    """An injection was found but building it produced None."""


class CyclicDependency(ResolutionError):  # noqa: N818
    """A token depends on itself; ``path`` holds the tokens forming the cycle."""

    def __init__(self, path: tuple[Any, ...]) -> None:
        self.path = path
        chain = " -> ".join(repr(token) for token in path)
        super().__init__(f"Cyclic dependency: {chain}")


class Container:
    """Hierarchical DI container.

    - tokens map to recipes: classes, factories, ``(callable, *deps)`` tuples,
      `Token` forwards, `Value` wrappers, `Injection` objects, literals
    - nested mappings form namespaces reachable via dotted tokens
    - every token is built once per container and memoized
    - a child container rebuilds a token only when it, or something it
      depends on, is overridden in the child; otherwise the parent's
      instance is shared.
    """

    @staticmethod
    def token(token: Any) -> Token:
        """Recipe forwarding to whatever ``token`` resolves to."""
        return Token(token)

    @staticmethod
    def value(value: Any) -> Value:
        """Recipe resolving to ``value`` itself, never calling or instantiating it."""
        return Value(value)

    def __init__(
        self,
        parent: Container | Mapping[Any, Any] | None = None,
        injections: Mapping[Any, Any] | None = None,
    ) -> None:
        if not isinstance(parent, Container):
            injections = parent
            parent = None

        self._parent = parent
        self._lock = threading.RLock()
        self._has_cache: dict[Hashable, bool] = {}
        self._injections_cache: dict[Hashable, Injection | Namespace | None] = {}
        self._resolved: dict[Hashable, object] = {}
        self._flatten_cache: dict[Hashable, dict[Hashable, Injection | Namespace]] = {}

        # Inline declarations are matched against the raw table while it is normalized.
        raw = injections or {}
        self._injections: Namespace = normalize_injections(raw, lambda token: lookup_token(raw, token) is not None)

    @property
    def parent(self) -> Container | None:
        return self._parent

    def create_scope(self, injections: Mapping[Any, Any] | None = None) -> Container:
        """Create a child container that overrides ``injections`` and inherits the rest."""
        return Container(self, injections or {})

    def has(self, token: Hashable) -> bool:
        """Return whether ``token`` is configured in this container (parents are not consulted)."""
        cached = self._has_cache.get(token, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        with self._lock:
            if token not in self._has_cache:
                self._has_cache[token] = self._has_token(token)
            return self._has_cache[token]

    def __contains__(self, token: Hashable) -> bool:
        return self.has(token)

    def get(self, token: Hashable) -> Any:
        """Resolve ``token`` to its value.

        - If the token was resolved before: return the memoized value.
        - Otherwise build it here when it, or any token in its dependency
          closure, is configured locally (or there is no parent); else take
          the parent's value.
        Raises `NoSuchToken`, `TokenNotResolved` or `CyclicDependency`.
        """
        resolved = self._resolved.get(token, _MISSING)
        if resolved is not _MISSING:
            return resolved

        with self._lock:
            return self._lookup(token)

    def _has_token(self, token: Hashable) -> bool:
        return lookup_token(self._injections, token) is not None

    def _get_injection(self, token: Hashable) -> Injection | Namespace | None:
        with self._lock:
            if token in self._injections_cache:
                return self._injections_cache[token]

            if isinstance(token, Injection):
                # inline fallbacks are their own token
                injection = token
            else:
                injection = lookup_token(self._injections, token)

            if injection is None and self._parent is not None:
                injection = self._parent._get_injection(token)  # noqa: SLF001

            if injection is None and inspect.isclass(token):
                logger.debug("No injection configured for %r; constructing it directly", token)
                injection = normalize_injection(token, self.has)

            self._injections_cache[token] = injection
            return injection

    def _lookup(self, token: Hashable) -> Any:
        resolved = self._resolved.get(token, _MISSING)
        if resolved is _MISSING:
            resolved = self._resolved[token] = self._resolve_token(token)
        return resolved

    def _resolve_token(self, token: Hashable) -> Any:
        injection = self._injection_for(token)
        if injection is None:
            msg = f"Token did not resolve to an injection: {token!r}"
            raise NoSuchToken(msg)

        resolved = self._resolve(token, injection)
        if resolved is None:
            msg = f"Token resolved to an injection but did not resolve to a value: {token!r}"
            raise TokenNotResolved(msg)

        return resolved

    def _injection_for(self, token: Hashable) -> Injection | None:
        injection = self._get_injection(token)
        if isinstance(injection, dict):
            return self._namespace_injection(token, self._namespace_keys(token))
        return injection

    def _namespace_keys(self, token: Hashable) -> list[str]:
        """Keys of the namespace ``token`` names, merged across the parent chain."""
        keys = [] if self._parent is None else self._parent._namespace_keys(token)  # noqa: SLF001
        local = lookup_token(self._injections, token)
        if isinstance(local, dict):
            keys.extend(key for key in local if isinstance(key, str) and key not in keys)
        return keys

    def _namespace_injection(self, token: Hashable, keys: list[str]) -> Injection:
        return Injection(lambda *values: dict(zip(keys, values)), *(f"{token}.{key}" for key in keys))

    def _resolve(self, token: Hashable, injection: Injection) -> Any:
        flattened = self._flatten(token, injection)

        if self._parent is None or self.has(token) or any(self.has(dep) for dep in flattened):
            logger.debug("Building %r with dependencies %r", token, injection.dependencies)
            dependencies = [self._lookup(dep) for dep in injection.dependencies]
            return injection.build(*dependencies)

        logger.debug("Delegating %r to parent container", token)
        return self._parent.get(token)

    def _flatten(
        self,
        token: Hashable,
        injection: Injection,
        path: tuple[Any, ...] = (),
    ) -> dict[Hashable, Injection]:
        if token in self._flatten_cache:
            return self._flatten_cache[token]

        path = (*path, token)
        flattened: dict[Hashable, Injection] = {}
        for dep in injection.dependencies:
            if dep in path:
                raise CyclicDependency((*path, dep))

            dep_injection = self._injection_for(dep)
            if dep_injection is None:
                continue

            flattened[dep] = dep_injection
            flattened.update(self._flatten(dep, dep_injection, path))

        self._flatten_cache[token] = flattened
        return flattened
