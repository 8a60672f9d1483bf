## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import abc
from typing import Any, Iterable, Mapping

from .types import Domain
from .errors import EvaluationException


class Resolver(abc.ABC):
    """Named-symbol lookup consulted by the evaluator.  Writability is advertised per domain."""

    @abc.abstractmethod
    def get(self, name: str, domain: Domain = Domain.DEFAULT) -> Any:
        """Return the value bound to `name`, or None when it is not defined."""

    def is_writable(self, domain: Domain, name: str | None = None) -> bool:
        return False

    def set(self, name: str, value: Any, domain: Domain = Domain.DEFAULT) -> None:
        raise EvaluationException(f"Cannot assign '{name}': {domain.value} domain is not writable")

    def children(self) -> Iterable["Resolver"]:
        return ()

    def reaches(self, other: "Resolver") -> bool:
        return self is other or any(child.reaches(other) for child in self.children())


class MapResolver(Resolver):
    def __init__(self, mapping: dict | None = None, writable: bool = False):
        self.mapping = {} if mapping is None else mapping
        self.writable = writable

    def get(self, name, domain=Domain.DEFAULT):
        return self.mapping.get(name)

    def is_writable(self, domain, name=None):
        return self.writable and domain is Domain.DEFAULT

    def set(self, name, value, domain=Domain.DEFAULT):
        if not self.is_writable(domain, name):
            super().set(name, value, domain)
        self.mapping[name] = value

    def __repr__(self):
        return f"MapResolver({len(self.mapping)} symbols)"


class ChainedResolver(Resolver):
    """Prefix-routed sub-resolvers, then an ordered list of fallbacks, plus one writable scope per domain.

    A name equal to a registered prefix resolves to the sub-resolver itself, so `env.HOME` works both
    as a member lookup and as a flat dotted name `prefix.suffix` delegated with the suffix.
    """

    def __init__(self, *fallbacks: Resolver):
        self.prefixes: dict[str, Resolver] = {}
        self.fallbacks: list[Resolver] = []
        self.writable: dict[Domain, Resolver] = {}
        for resolver in fallbacks:
            self.add(resolver)

    def _check_acyclic(self, resolver: Resolver) -> None:
        if resolver.reaches(self):
            raise EvaluationException(f"Installing {resolver!r} would create a resolver cycle")

    def add(self, resolver: Resolver) -> "ChainedResolver":
        self._check_acyclic(resolver)
        self.fallbacks.append(resolver)
        return self

    def add_prefix(self, prefix: str, resolver: Resolver) -> "ChainedResolver":
        self._check_acyclic(resolver)
        self.prefixes[prefix] = resolver
        return self

    def set_writable(self, domain: Domain, resolver: Resolver) -> "ChainedResolver":
        self._check_acyclic(resolver)
        self.writable[domain] = resolver
        return self

    def children(self):
        yield from self.prefixes.values()
        yield from self.fallbacks
        yield from self.writable.values()

    def get(self, name, domain=Domain.DEFAULT):
        if (sub := self.prefixes.get(name)) is not None:
            return sub
        for prefix, sub in self.prefixes.items():
            if name.startswith(prefix + '.'):
                return sub.get(name[len(prefix) + 1:], domain)

        if (scope := self.writable.get(domain)) is not None and scope not in self.fallbacks:
            if (value := scope.get(name, domain)) is not None:
                return value
        for resolver in self.fallbacks:
            if (value := resolver.get(name, domain)) is not None:
                return value
        return None

    def is_writable(self, domain, name=None):
        return (scope := self.writable.get(domain)) is not None and scope.is_writable(domain, name)

    def set(self, name, value, domain=Domain.DEFAULT):
        if not self.is_writable(domain, name):
            super().set(name, value, domain)
        self.writable[domain].set(name, value, domain)

    def __repr__(self):
        return f"ChainedResolver(prefixes={list(self.prefixes)}, fallbacks={len(self.fallbacks)})"


class LoopResolver(Resolver):
    """Scope of a `for` loop: one bound loop variable, writable locals, everything else from the parent."""

    RESULT = '$'

    def __init__(self, parent: Resolver, name: str | None = None, domain: Domain = Domain.DEFAULT):
        self.parent = parent
        self.name = name
        self.domain = domain
        self.value: Any = None
        self.locals: dict[str, Any] = {}

    def children(self):
        return (self.parent,)

    def bind(self, value: Any) -> None:
        self.value = value

    @property
    def result(self) -> Any:
        return self.locals.get(self.RESULT)

    def get(self, name, domain=Domain.DEFAULT):
        if name == self.name and domain in (self.domain, Domain.DEFAULT):
            return self.value
        if domain is not Domain.GLOBAL and name in self.locals:
            return self.locals[name]
        return self.parent.get(name, domain)

    def is_writable(self, domain, name=None):
        # `$`, the loop variable and LOCAL names are kept here; everything else is written to the parent.
        if name == self.RESULT or domain is Domain.LOCAL or (name == self.name and domain is self.domain):
            return True
        return self.parent.is_writable(domain, name)

    def set(self, name, value, domain=Domain.DEFAULT):
        if name == self.name and domain is self.domain:
            self.value = value
        elif name == self.RESULT or domain is Domain.LOCAL:
            self.locals[name] = value
        else:
            self.parent.set(name, value, domain)


class ObjectResolver(Resolver):
    """Collects the `key = expr` members of an object constructor body, in insertion order."""

    def __init__(self, parent: Resolver):
        self.parent = parent
        self.members: dict[str, Any] = {}

    def children(self):
        return (self.parent,)

    def get(self, name, domain=Domain.DEFAULT):
        if domain is Domain.DEFAULT and name in self.members:
            return self.members[name]
        return self.parent.get(name, domain)

    def is_writable(self, domain, name=None):
        return domain is Domain.DEFAULT or self.parent.is_writable(domain, name)

    def set(self, name, value, domain=Domain.DEFAULT):
        if domain is Domain.DEFAULT:
            self.members[name] = value
        else:
            self.parent.set(name, value, domain)


def as_resolver(source: Resolver | Mapping | None) -> Resolver:
    if source is None:
        return MapResolver()
    if isinstance(source, Resolver):
        return source
    if isinstance(source, Mapping):
        return MapResolver(dict(source) if not isinstance(source, dict) else source)
    raise TypeError(f"Expected a Resolver or a mapping, got {type(source).__name__}")
