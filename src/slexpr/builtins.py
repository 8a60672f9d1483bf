## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# slexpr — root symbols available to every expression, whatever the resolver.
#

import math
from numbers import Number
from types import MappingProxyType
from collections.abc import Iterable, Mapping, Sequence

from .types import Value, Lambda, is_true, is_number
from .errors import EvaluationException, CastException, AssertException
from .stream import CharStream
from .operators import op_add, check_nil, type_name
from .functions import Function, function
from .resolvers import LoopResolver, ObjectResolver
from .formatting import format_item
from .printf import format_values


## CONTROL
@function(object, Lambda, Lambda, name='if')
def fn_if(resolver, args):
    branch = 1 if is_true(args.get_nullable(0)) else 2
    if branch >= len(args):
        return ''
    return args.lambda_at(branch).evaluate(resolver)


def _accumulate(total: Value | None, value: Value) -> Value | None:
    if value.is_nil:
        return total
    return value if total is None else op_add(total, value)

def _run(fn: Lambda, resolver) -> Value | None:
    return fn.evaluate(resolver) if fn.text else None

@function(Lambda, Lambda, Lambda, Lambda, name='for')
def fn_for(resolver, args):
    """`for(init, cond, update, body)` or `for(var, iterable, body)`.

    The result is the loop's `$` when the body assigns it, otherwise the `+` of all body values.
    """
    total = None
    if len(args) == 4:
        init, cond, update, body = (args.lambda_at(i) for i in range(4))
        loop = LoopResolver(resolver)
        _run(init, loop)
        while not cond.text or is_true(cond.evaluate(loop).payload):
            total = _accumulate(total, body.evaluate(loop))
            _run(update, loop)
    elif len(args) == 3:
        name, domain = args.lambda_at(0).read_literal()
        iterable = args.lambda_at(1).evaluate(resolver)
        check_nil(iterable)
        items = iterable.payload
        if not isinstance(items, Iterable) or is_number(items):
            raise EvaluationException(f"Function for(): cannot iterate over '{type_name(items)}'")
        loop, body = LoopResolver(resolver, name, domain), args.lambda_at(2)
        for item in items:
            loop.bind(item)
            total = _accumulate(total, body.evaluate(loop))
    else:
        raise EvaluationException(f"Function for(): expected 3 or 4 arguments, got {len(args)}")

    if LoopResolver.RESULT in loop.locals:
        return loop.result
    return total.anonymous() if total is not None else None


@function(object, str, name='assert')
def fn_assert(resolver, args):
    if not is_true(condition := args.get_nullable(0)):
        message = args.get_nullable(1, str) if len(args) > 1 else None
        raise AssertException(message or f"Assertion failed: {format_item(condition)}")
    return condition


## STRINGS
@function(str, object, variadic=True, name='format')
def fn_format(resolver, args):
    return format_values(args.get(0, str), args.values()[1:])

@function(str, name='@')
def fn_interpolate(resolver, args):
    from .evaluator import interpolate
    return interpolate(args.get(0, str), resolver, args.flags)

@function(str, name='$')
def fn_smart_interpolate(resolver, args):
    from .evaluator import smart_interpolate
    return smart_interpolate(args.get(0, str), resolver, args.flags)

@function(object, name='#')
def fn_size(resolver, args):
    if isinstance(x := args.get(0), (str, Sequence, Mapping)):
        return len(x)
    raise EvaluationException(f"Function #(): cannot take the size of '{type_name(x)}'")


## COERCIONS
def _parse_number(symbol: str, text: str):
    stream = CharStream(text.strip())
    try:
        value = stream.read_number()
    except EvaluationException:
        value = None
    if value is None or not stream.at_end():
        raise CastException(f"Function {symbol}(): cannot convert '{text}' to a number")
    return value

@function(object, name='double')
def fn_double(resolver, args):
    x = args.get(0)
    if isinstance(x, str):
        x = _parse_number('double', x)
    if not is_number(x):
        raise CastException(f"Function double(): cannot convert '{type_name(x)}' to a number")
    return float(x)

@function(object, name='long')
def fn_long(resolver, args):
    x = args.get(0)
    if isinstance(x, str):
        x = _parse_number('long', x)
    if not is_number(x):
        raise CastException(f"Function long(): cannot convert '{type_name(x)}' to a number")
    if math.isnan(x) or math.isinf(x):
        raise CastException(f"Function long(): cannot convert {format_item(x)} to an integer")
    return int(x)

@function(object, name='string')
def fn_string(resolver, args):
    return format_item(args.get_nullable(0))


## MATH
def _math(name: str, fn, arity: int = 1) -> Function:
    def evaluate(resolver, args):
        values = [args.get(i, Number) for i in range(max(arity, len(args)))]
        try:
            return fn(*values)
        except (ValueError, OverflowError) as exc:
            raise EvaluationException(f"Function math.{name}(): {exc}") from None
    return Function(evaluate, (Number,) * max(arity, 1), variadic=arity == 0, name=f"math.{name}")

def _round(x):
    return math.floor(x + 0.5) if math.isfinite(x) else x

def _min_max(pick):
    def fn(*values):
        if not values:
            raise ValueError("expected at least one argument")
        return pick(values)
    return fn

MATH = MappingProxyType({
    'ceil': _math('ceil', lambda x: math.ceil(x) if math.isfinite(x) else x),
    'floor': _math('floor', lambda x: math.floor(x) if math.isfinite(x) else x),
    'abs': _math('abs', abs),
    'round': _math('round', _round),
    'sqrt': _math('sqrt', math.sqrt),
    'pow': _math('pow', math.pow, 2),
    'min': _math('min', _min_max(min), 0),
    'max': _math('max', _min_max(max), 0),
    'log': _math('log', math.log),
    'exp': _math('exp', math.exp),
    'pi': math.pi,
    'e': math.e,
})


## CONSTRUCTORS
def _construct_object(resolver, args):
    return dict(args.resolver.members)

def _construct_array(resolver, args):
    return args.values()

OBJECT_CONSTRUCTOR = Function(_construct_object, None, arg_end='}', scope=ObjectResolver, name='{}')
ARRAY_CONSTRUCTOR = Function(_construct_array, None, arg_end=']', name='[]')


BUILTINS = MappingProxyType({
    'math': MATH,
    'if': fn_if,
    'for': fn_for,
    'format': fn_format,
    'assert': fn_assert,
    '@': fn_interpolate,
    '$': fn_smart_interpolate,
    '#': fn_size,
    'double': fn_double,
    'long': fn_long,
    'string': fn_string,
})
