from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from ._signature import UNSET, DeclaredParameter, constructor_parameters, extract_parameters


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    T = TypeVar("T")

    # A callable to read parameter names from, or a textual signature
    SignatureSource = Callable[..., Any] | str


@dataclass
class Binding:
    factory: Callable[..., object]
    singleton: bool = False


class UnknownIdentifierError(KeyError):
    """Raised when an identifier has no instance, binding or alias."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Unknown identifier: {identifier!r}")
        self.identifier = identifier

    def __str__(self) -> str:
        return str(self.args[0])


class Container:
    """Name-based DI container.

    - bind instances, constructors or factories to string identifiers
    - auto-wire parameters by matching their names to identifiers
    - singletons are promoted to instances on first resolution
    - aliases (flattened when created)
    - optional scoping.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}
        self._instances: dict[str, object] = {}
        self._aliases: dict[str, str] = {}
        self._lock = threading.RLock()

    def has(self, identifier: str) -> bool:
        """Determine if anything is registered under ``identifier``."""
        with self._lock:
            return identifier in self._bindings or identifier in self._instances or identifier in self._aliases

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.has(identifier)

    def get(self, identifier: str) -> Any:
        """Retrieve the object registered under ``identifier``.

        Aliases are followed to the original identifier. Instances are returned
        as-is; bindings run their factory with auto-wired parameters and, when
        marked singleton, are replaced by the value they produced.
        """
        with self._lock:
            if not self.has(identifier):
                raise UnknownIdentifierError(identifier)

            key = self._resolve_identifier(identifier)

            if key in self._instances:
                return self._instances[key]

            binding = self._bindings.get(key)
            if binding is None:
                return self._fallback(key).get(key)

            value = self.invoke(binding.factory)

            # The factory may have re-registered the identifier; don't clobber that
            if binding.singleton and self._bindings.get(key) is binding:
                self._create_singleton_from_binding(key, value)

            return value

    def construct(self, cls: type[T], params: Mapping[str, Any] | None = None) -> T:
        """Construct ``cls`` injecting any resolvable constructor parameters.

        Example:
          container.bind_instance("db", db)
          repo = container.construct(Repository)  # Repository(db)

        """
        return Invoker(self).construct(cls, params or {})

    def invoke(
        self,
        func: Callable[..., T],
        params: Mapping[str, Any] | None = None,
        signature: SignatureSource | None = None,
    ) -> T:
        """Call ``func`` injecting any resolvable parameters and return its result.

        When ``func`` is a wrapper that hides the original parameters, pass the
        original function (or a textual signature like ``"(db, cache)"``) as
        ``signature`` to read the parameter names from.
        """
        return Invoker(self).invoke(func, params or {}, signature)

    def bind_instance(self, identifier: str, value: object) -> None:
        """Register a concrete value (always returned as-is)."""
        with self._lock:
            self._forget(identifier)
            self._instances[identifier] = value

    def bind_constructor(self, identifier: str, cls: type, *, singleton: bool = False) -> None:
        """Register a class constructed through :meth:`construct` on every resolution."""
        self._store_binding(identifier, Binding(factory=lambda: self.construct(cls), singleton=singleton))

    def bind_factory(self, identifier: str, factory: Callable[..., object], *, singleton: bool = False) -> None:
        """Register a factory invoked through :meth:`invoke` on every resolution.

        Example:
          container.bind_factory("db", lambda settings: Database(settings.dsn), singleton=True)

        """
        self._store_binding(identifier, Binding(factory=factory, singleton=singleton))

    def make_singleton(self, identifier: str) -> None:
        """Make sure the binding behind ``identifier`` is a singleton."""
        with self._lock:
            if not self.has(identifier):
                raise UnknownIdentifierError(identifier)

            key = self._resolve_identifier(identifier)

            if key in self._instances:
                return

            binding = self._bindings.get(key)
            if binding is None:
                self._fallback(key).make_singleton(key)
                return

            binding.singleton = True

    def alias(self, identifier: str, alias_name: str) -> None:
        """Make ``alias_name`` resolve to whatever ``identifier`` ultimately refers to."""
        with self._lock:
            target = self._resolve_identifier(identifier)
            if target == alias_name:
                msg = f"Cannot alias {identifier!r} as {alias_name!r}: the alias would refer to itself"
                raise ValueError(msg)

            if alias_name in self._bindings or alias_name in self._instances:
                logger.debug("Alias %r replaces the registration of the same name", alias_name)
                self._bindings.pop(alias_name, None)
                self._instances.pop(alias_name, None)

            self._aliases[alias_name] = target

    def resolve_param(self, name: str, params: Mapping[str, Any]) -> Any:
        """Resolving param.

        Resolution precedence:
        1. explicit parameter (even when its value is UNSET)
        2. registration with the same name
        3. UNSET, leaving the callable's own default to apply.
        """
        if name in params:
            return params[name]

        if self.has(name):
            return self.get(name)

        return UNSET

    def create_scope(self) -> Scope:
        """Create a scope that prefers its own registrations, falls back to parent."""
        return Scope(self, _from_parent=True)

    def _resolve_identifier(self, identifier: str) -> str:
        # Chains are flattened on write, but a target may itself be aliased later
        while identifier in self._aliases:
            identifier = self._aliases[identifier]
        return identifier

    def _fallback(self, identifier: str) -> Container:
        # Reached through an alias whose target was never registered
        raise UnknownIdentifierError(identifier)

    def _store_binding(self, identifier: str, binding: Binding) -> None:
        with self._lock:
            self._forget(identifier)
            self._bindings[identifier] = binding

    def _forget(self, identifier: str) -> None:
        if self._aliases.pop(identifier, None) is not None:
            logger.debug("Registration %r replaces the alias of the same name", identifier)
        self._bindings.pop(identifier, None)
        self._instances.pop(identifier, None)

    def _create_singleton_from_binding(self, identifier: str, value: object) -> None:
        logger.debug("Promoting %r to a singleton instance", identifier)
        self._instances[identifier] = value
        del self._bindings[identifier]


class Scope(Container):
    """A scoped container that looks up in itself first, then falls back to a parent container.

    Useful for per-request/per-test lifetimes without altering root registrations.
    """

    def __init__(self, parent: Container, *, _from_parent: bool = False) -> None:
        if not _from_parent:
            msg = "Scope instances must be created via Container.create_scope()"
            raise RuntimeError(msg)
        super().__init__()
        self._parent = parent

    def has(self, identifier: str) -> bool:
        return super().has(identifier) or self._parent.has(identifier)

    def _fallback(self, identifier: str) -> Container:
        return self._parent


class Invoker:
    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T], params: Mapping[str, Any]) -> T:
        return self._call(cls, constructor_parameters(cls), params)

    def invoke(self, func: Callable[..., T], params: Mapping[str, Any], signature: SignatureSource | None) -> T:
        declared = extract_parameters(func if signature is None else signature)
        return self._call(func, declared, params)

    def _call(self, target: Callable[..., T], declared: list[DeclaredParameter], params: Mapping[str, Any]) -> T:
        values = [self._resolver.resolve_param(p.name, params) for p in declared]
        args, kwargs = self._materialize_call(declared, values)
        return target(*args, **kwargs)

    def _materialize_call(
        self, declared: list[DeclaredParameter], values: list[Any]
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        # unresolved positionals, only filled in once a later positional has a value
        pending: list[DeclaredParameter] = []

        for p, value in zip(declared, values):
            if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
                if value is UNSET:
                    pending.append(p)
                    continue
                args.extend(_placeholder(q) for q in pending)
                pending.clear()
                args.append(value)

            elif p.kind is inspect.Parameter.VAR_POSITIONAL:
                if value is not UNSET:
                    args.extend(_placeholder(q) for q in pending)
                    pending.clear()
                    args.extend(value)

            elif p.kind is inspect.Parameter.KEYWORD_ONLY:
                if value is not UNSET:
                    kwargs[p.name] = value
                elif not p.has_default:
                    kwargs[p.name] = None

            elif value is not UNSET:
                kwargs.update(value)

        # trailing unresolved positionals fall back to the callable's defaults
        while pending and pending[-1].has_default:
            pending.pop()
        args.extend(_placeholder(q) for q in pending)

        return args, kwargs


def _placeholder(p: DeclaredParameter) -> Any:
    """Value passed for an unresolved positional that can't simply be left out."""
    # parameters read from signature text know *that* they have a default but
    # not its value, so they get None here like a parameter with no default
    if p.has_default and p.default is not UNSET:
        return p.default
    return None
