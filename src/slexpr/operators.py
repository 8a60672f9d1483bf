## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import enum
import math
from typing import Any, Mapping, Sequence

from .types import Value, Target, Domain, Lambda, is_number, is_true, is_mathematical_integer, demote
from .errors import EvaluationException, NilValueException, MissingSymbolException
from .functions import Function
from .resolvers import Resolver


class Kind(enum.Enum):
    NIL = 'nil'
    INTEGER = 'integer'
    DOUBLE = 'double'
    BOOLEAN = 'boolean'
    STRING = 'string'
    FUNCTION = 'function'
    LAMBDA = 'lambda'
    MAPPING = 'mapping'
    SEQUENCE = 'sequence'
    RESOLVER = 'resolver'
    OBJECT = 'object'


def kind_of(x: Any) -> Kind:
    if x is None: return Kind.NIL
    if isinstance(x, bool): return Kind.BOOLEAN
    if isinstance(x, int): return Kind.INTEGER
    if isinstance(x, float): return Kind.DOUBLE
    if isinstance(x, str): return Kind.STRING
    if isinstance(x, Function): return Kind.FUNCTION
    if isinstance(x, Lambda): return Kind.LAMBDA
    if isinstance(x, Resolver): return Kind.RESOLVER
    if isinstance(x, Mapping): return Kind.MAPPING
    if isinstance(x, Sequence): return Kind.SEQUENCE
    return Kind.OBJECT

def type_name(x: Any) -> str:
    kind = kind_of(x)
    return type(x).__name__ if kind is Kind.OBJECT else kind.value


def not_applicable(op: str, *values: Value) -> EvaluationException:
    names = "' and '".join(type_name(v.payload) for v in values)
    return EvaluationException(f"Operator '{op}' not applicable for '{names}'")


def check_nil(*values: Value) -> None:
    for v in values:
        if v.payload is None:
            if v.name is not None:
                raise MissingSymbolException(v.name)
            raise NilValueException()


def _number(x) -> Value:
    return Value(demote(x))


## ARITHMETIC
def op_add(a: Value, b: Value) -> Value:
    check_nil(a, b)
    if is_number(a.payload) and is_number(b.payload):
        return _number(a.payload + b.payload)
    if isinstance(a.payload, str) and isinstance(b.payload, str):
        return Value(a.payload + b.payload)
    raise not_applicable('+', a, b)

def _arithmetic(op: str, a: Value, b: Value):
    check_nil(a, b)
    if not (is_number(a.payload) and is_number(b.payload)):
        raise not_applicable(op, a, b)
    return a.payload, b.payload

def op_sub(a: Value, b: Value) -> Value:
    x, y = _arithmetic('-', a, b)
    return _number(x - y)

def op_mul(a: Value, b: Value) -> Value:
    x, y = _arithmetic('*', a, b)
    return _number(x * y)

def op_div(a: Value, b: Value) -> Value:
    x, y = _arithmetic('/', a, b)
    if y == 0:
        raise EvaluationException("Division by zero")
    return _number(x / y)

def op_rem(a: Value, b: Value) -> Value:
    x, y = _arithmetic('%', a, b)
    if y == 0:
        raise EvaluationException("Remainder by zero")
    return _number(math.fmod(x, y))

def op_neg(a: Value) -> Value:
    check_nil(a)
    if not is_number(a.payload):
        raise not_applicable('-', a)
    return _number(-a.payload)


## LOGIC
def op_not(a: Value) -> Value:
    return Value(0 if is_true(a.payload) else 1)

def op_and(a: Value, b: Value) -> Value:
    return b if is_true(a.payload) else a

def op_or(a: Value, b: Value) -> Value:
    return a if is_true(a.payload) else b

def op_select(a: Value, b: Value) -> Value:
    return b if a.payload is None else a


## COMPARISON
def _compare(op: str, a: Value, b: Value) -> int:
    check_nil(a, b)
    x, y = a.payload, b.payload
    if (is_number(x) and is_number(y)) or (isinstance(x, str) and isinstance(y, str)):
        return (x > y) - (x < y)
    raise not_applicable(op, a, b)

def op_lt(a: Value, b: Value) -> Value: return Value(int(_compare('<', a, b) < 0))
def op_lte(a: Value, b: Value) -> Value: return Value(int(_compare('<=', a, b) <= 0))
def op_gt(a: Value, b: Value) -> Value: return Value(int(_compare('>', a, b) > 0))
def op_gte(a: Value, b: Value) -> Value: return Value(int(_compare('>=', a, b) >= 0))

def equals(a: Value, b: Value, op: str = '==') -> bool:
    x, y = a.payload, b.payload
    if x is None or y is None:
        return x is None and y is None
    if is_number(x) and is_number(y):
        return x == y
    kx, ky = kind_of(x), kind_of(y)
    if kx is not ky:
        raise not_applicable(op, a, b)
    return x == y

def op_eq(a: Value, b: Value) -> Value: return Value(int(equals(a, b, '==')))
def op_neq(a: Value, b: Value) -> Value: return Value(int(not equals(a, b, '~=')))


## CONTAINERS
def _sequence_index(key: Value) -> int:
    if not is_number(key.payload):
        raise EvaluationException(f"Operator '[]': expected numeric index, got '{type_name(key.payload)}'")
    if not is_mathematical_integer(key.payload):
        raise EvaluationException(f"Operator '[]': expected integer index, got {key.payload}")
    return int(key.payload)

def op_index(container: Value, key: Value) -> Value:
    """Element lookup; a missing key or an out-of-range index yields nil."""
    check_nil(container, key)
    obj, k = container.payload, key.payload
    name = f"{container.name}[{k}]" if container.name else None
    match kind_of(obj):
        case Kind.MAPPING:
            if k not in obj and is_number(k) and (alt := str(k)) in obj:
                k = alt
            return Value(obj.get(k), name=name)
        case Kind.RESOLVER:
            return Value(obj.get(str(k), Domain.DEFAULT), name=name)
        case Kind.SEQUENCE:
            i = _sequence_index(key)
            return Value(obj[i] if 0 <= i < len(obj) else None, name=name)
    raise not_applicable('[]', container)

def op_member(value: Value, member: str, resolver: Resolver) -> Value:
    """Member lookup on resolvers and mappings.  A nil-with-name retries as the dotted name `name.member`."""
    if value.payload is None:
        if value.name is None:
            check_nil(value)
        domain = value.target.domain if value.target else Domain.DEFAULT
        dotted = f"{value.name}.{member}"
        return Value(resolver.get(dotted, domain), name=dotted, target=Target(resolver, dotted, domain))

    qualified = f"{value.name}.{member}" if value.name else member
    match kind_of(value.payload):
        case Kind.RESOLVER:
            return Value(value.payload.get(member, Domain.DEFAULT), name=qualified)
        case Kind.MAPPING:
            return Value(value.payload.get(member), name=qualified)
    raise not_applicable('.', value)


BINARY = {
    '+': op_add, '-': op_sub, '*': op_mul, '/': op_div, '%': op_rem,
    '&': op_and, '|': op_or, '?': op_select,
    '<': op_lt, '<=': op_lte, '>': op_gt, '>=': op_gte,
    '==': op_eq, '~=': op_neq,
}
