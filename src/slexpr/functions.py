## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import inspect
from numbers import Number
from typing import Any, Callable, get_origin
from collections.abc import Mapping, Sequence

from .types import Value, Lambda, EvalFlags, is_number
from .errors import EvaluationException, CastException


def accepts(cls: type, x: Any) -> bool:
    """Parameter-class check; nil is accepted for every class and the nil rules are left to the callee."""
    if x is None or cls in (object, Any):
        return True
    if cls in (Number, float):
        return is_number(x)
    if cls is int:
        return isinstance(x, int) and not isinstance(x, bool)
    if cls in (Sequence, list, tuple):
        return isinstance(x, Sequence) and not isinstance(x, str)
    return isinstance(x, cls)

def class_name(cls: type) -> str:
    return getattr(cls, '__name__', str(cls))


class Function:
    """Callable value with declared parameter classes.

    Arity is fixed (`params` only), variadic (`variadic=True` repeats the last declared class), or fully
    generic (`params=None`, any number of untyped arguments).  Parameters declared as `Lambda` or
    `Expression` receive their argument text un-evaluated.
    """

    def __init__(self, evaluate: Callable[..., Any], params: Sequence[type] | None = (), *,
                 variadic: bool = False, arg_sep: str = ',', arg_end: str = ')',
                 scope: Callable | None = None, name: str | None = None):
        self._evaluate = evaluate
        self.params = None if params is None else tuple(params)
        self.variadic = variadic
        self.arg_sep = arg_sep
        self.arg_end = arg_end
        self.scope = scope
        self.name = name or getattr(evaluate, '__name__', '<function>')

    @property
    def is_generic(self) -> bool:
        return self.params is None

    def param_type(self, index: int) -> type | None:
        """Declared class of the argument at `index`, or None if the function takes no more arguments."""
        if self.params is None:
            return object
        if index < len(self.params):
            return self.params[index]
        if self.variadic and self.params:
            return self.params[-1]
        return None

    def new_args(self, symbol: str, resolver, flags: EvalFlags = EvalFlags.NONE) -> "ArgList":
        scope = self.scope(resolver) if self.scope is not None else resolver
        return ArgList(self, symbol, scope, flags)

    def invoke(self, resolver, args: "ArgList") -> Value:
        result = self._evaluate(resolver, args)
        return result if isinstance(result, Value) else Value(result)

    @classmethod
    def from_callable(cls, fn: Callable[..., Any], name: str | None = None) -> "Function":
        """Wrap a host callable: annotations give parameter classes, `*args` gives a variadic tail."""
        params, variadic = [], False
        for p in inspect.signature(fn).parameters.values():
            if p.kind is p.VAR_POSITIONAL:
                variadic = True
            elif p.kind not in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
                continue
            annotation = p.annotation
            if annotation is inspect.Parameter.empty or isinstance(annotation, str):
                annotation = object
            elif (origin := get_origin(annotation)) is not None and isinstance(origin, type):
                annotation = origin
            elif not isinstance(annotation, type):
                annotation = object
            params.append(annotation)
            if variadic: break

        def _call(resolver, args: ArgList):
            return fn(*args.values())
        return cls(_call, params, variadic=variadic, name=name or fn.__name__)

    def __repr__(self):
        return f"<function {self.name}>"


def function(*params: type, variadic: bool = False, generic: bool = False, **options) -> Callable[[Callable], Function]:
    """Decorator turning `fn(resolver, args)` into a `Function`."""
    def wrap(fn: Callable) -> Function:
        return Function(fn, None if generic else params, variadic=variadic, **options)
    return wrap


class ArgList:
    """Arguments of a single call, built one slot at a time while the call is parsed."""

    def __init__(self, function: Function, symbol: str, resolver, flags: EvalFlags = EvalFlags.NONE):
        self.function = function
        self.symbol = symbol
        self.resolver = resolver
        self.flags = flags
        self._args: list[Any] = []

    def peek(self) -> type:
        if (cls := self.function.param_type(len(self._args))) is None:
            raise EvaluationException(f"Function {self.symbol}(): too many arguments, expected {len(self.function.params)}")
        return cls

    def add(self, obj: Any) -> None:
        cls = self.peek()
        if not accepts(cls, obj):
            raise CastException(f"Function {self.symbol}(): invalid parameter type: expected {class_name(cls)}, got {type(obj).__name__}")
        self._args.append(obj)

    def __len__(self) -> int:
        return len(self._args)

    def size(self) -> int:
        return len(self._args)

    def values(self) -> list[Any]:
        return list(self._args)

    def get_nullable(self, index: int, cls: type = object) -> Any:
        if index >= len(self._args):
            raise EvaluationException(f"Function {self.symbol}(): missing argument {index + 1}")
        obj = self._args[index]
        if not accepts(cls, obj):
            raise CastException(f"Function {self.symbol}(): invalid parameter type: expected {class_name(cls)}, got {type(obj).__name__}")
        return obj

    def get(self, index: int, cls: type = object) -> Any:
        if (obj := self.get_nullable(index, cls)) is None:
            raise EvaluationException(f"Function {self.symbol}(): expected non-nil argument {index + 1}")
        return obj

    def lambda_at(self, index: int) -> Lambda:
        return self.get(index, Lambda)

    def __repr__(self):
        return f"{self.symbol}({', '.join(repr(a) for a in self._args)})"
