## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
from typing import Any, Callable, Mapping

from .types import Domain, EvalFlags, Value
from .functions import Function
from .resolvers import Resolver, MapResolver, ChainedResolver, as_resolver
from .evaluator import evaluate_value, interpolate as _interpolate, smart_interpolate as _smart_interpolate
from .formatting import format_item


class Runtime:
    """Minimal runtime facade focused on embedding: a global writable scope plus host resolvers."""

    def __init__(self, resolver: Resolver | Mapping | None = None, flags: EvalFlags = EvalFlags.NONE):
        self.globals = MapResolver(writable=True)
        self.resolver = ChainedResolver(self.globals).set_writable(Domain.DEFAULT, self.globals)
        if resolver is not None:
            self.resolver.add(as_resolver(resolver))

        self.flags = EvalFlags(flags)
        if os.environ.get('SLEXPR_DEBUG'):
            self.flags |= EvalFlags.TRACE

    def _flags(self, flags: EvalFlags | None) -> EvalFlags:
        return self.flags if flags is None else EvalFlags(flags) | (self.flags & EvalFlags.TRACE)

    # Registration ────────────────────────────────────────────────────────────────────────────
    def define(self, name: str, value: Any) -> None:
        self.globals.set(name, value)

    def register_function(self, name: str, fn: Callable | Function) -> None:
        self.globals.set(name, fn if isinstance(fn, Function) else Function.from_callable(fn, name=name))

    def register_resolver(self, prefix: str, resolver: Resolver | Mapping) -> None:
        self.resolver.add_prefix(prefix, as_resolver(resolver))

    def add_resolver(self, resolver: Resolver | Mapping) -> None:
        self.resolver.add(as_resolver(resolver))

    # Evaluation ──────────────────────────────────────────────────────────────────────────────
    def evaluate_value(self, source: str, flags: EvalFlags | None = None) -> Value:
        return evaluate_value(source, self.resolver, self._flags(flags))

    def evaluate(self, source: str, flags: EvalFlags | None = None) -> Any:
        return self.evaluate_value(source, flags).payload

    evaluate_expression = evaluate

    def evaluate_to_string(self, source: str, flags: EvalFlags | None = None) -> str | None:
        value = self.evaluate_value(source, flags)
        return None if value.is_nil else format_item(value.payload)

    def _template_flags(self, ignore_undefined: bool) -> EvalFlags:
        return self.flags | (EvalFlags.IGNORE_UNDEFINED if ignore_undefined else EvalFlags.NONE)

    def interpolate(self, template: str, ignore_undefined: bool = False) -> str:
        return _interpolate(template, self.resolver, self._template_flags(ignore_undefined))

    def smart_interpolate(self, template: str, ignore_undefined: bool = False) -> Any:
        return _smart_interpolate(template, self.resolver, self._template_flags(ignore_undefined))

    # Introspection ───────────────────────────────────────────────────────────────────────────
    def symbols(self) -> dict[str, Any]:
        return dict(self.globals.mapping)
