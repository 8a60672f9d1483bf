## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import math

import pytest

from slexpr.types import Domain, EvalFlags
from slexpr.errors import (EvaluationException, SyntaxErrorException, MissingSymbolException, CastException,
                           AssertException)
from slexpr.resolvers import MapResolver, ChainedResolver
from slexpr.builtins import BUILTINS, MATH
from slexpr.evaluator import evaluate_expression, evaluate_to_string


def _scope(**symbols) -> ChainedResolver:
    scope = MapResolver(dict(symbols), writable=True)
    return ChainedResolver(scope).set_writable(Domain.DEFAULT, scope)


def test_builtin_table_is_read_only():
    with pytest.raises(TypeError):
        BUILTINS['if'] = None
    with pytest.raises(TypeError):
        MATH['pi'] = 3


## IF
@pytest.mark.parametrize("source, expected", [
    ("if(1 < 2, 'a', 'b')", 'a'),
    ("if(nil, 1, 2)", 2),
    ("if(0, 'a')", ''),
    ("if('', 'a', 'b')", 'a'),
    ("if(1, 'yes', undefined + 1)", 'yes'),
    ("if(0, undefined + 1, 'no')", 'no'),
    ("if(1, if(0, 'x', 'y'), 'z')", 'y'),
])
def test_if(source, expected):
    assert evaluate_expression(source) == expected


def test_if_with_undefined_condition():
    with pytest.raises(MissingSymbolException):
        evaluate_expression("if(undefined, 1, 2)")
    assert evaluate_expression("if(undefined, 1, 2)", flags=EvalFlags.IGNORE_UNDEFINED) == 2


def test_if_branches_evaluate_against_caller_scope():
    scope = _scope(x=1)
    evaluate_expression("if(x, y = 'then', y = 'else')", scope)
    assert scope.get('y') == 'then'


## FOR
def test_classic_for_returns_loop_result():
    scope = _scope()
    assert evaluate_expression("for(i = 0, i < 5, i = i + 1, $ = (:$ ? 0) + i)", scope) == 10
    assert scope.get('i') == 5
    assert scope.get('$') is None


def test_classic_for_with_local_counter_accumulates_body():
    scope = _scope()
    assert evaluate_expression("for(:i = 0, :i < 4, :i = :i + 1, :i)", scope) == 6
    assert scope.get('i') is None


@pytest.mark.parametrize("source, expected", [
    ("for(x, [1, 2, 3], x * 2)", 12),
    ("for(c, 'abc', c + c)", 'aabbcc'),
    ("for(k, {a = 1, b = 2}, k)", 'ab'),
    ("for(x, [], x)", None),
    ("for(:x, [1, 2], :x + 1)", 5),
    ("for(x, [1, 2, 3], $ = x)", 3),
])
def test_iterable_for(source, expected):
    assert evaluate_expression(source, _scope()) == expected


def test_iterable_for_does_not_leak_loop_variable():
    scope = _scope()
    evaluate_expression("for(x, [1, 2], x)", scope)
    assert scope.get('x') is None


def test_for_errors():
    with pytest.raises(EvaluationException, match="cannot iterate"):
        evaluate_expression("for(x, 5, x)")
    with pytest.raises(EvaluationException, match="expected 3 or 4 arguments"):
        evaluate_expression("for(x, y)")
    with pytest.raises(SyntaxErrorException, match="Identifier expected"):
        evaluate_expression("for(1, [1], 2)")
    with pytest.raises(MissingSymbolException):
        evaluate_expression("for(x, undefined, x)")


def test_for_body_assignment_to_read_only_scope_is_rejected_up_front():
    with pytest.raises(EvaluationException, match="default domain is not writable") as info:
        evaluate_expression("for(x, [1, 2], y = x)", MapResolver({'y': 0}))
    assert info.value.source == 'y = x' and info.value.column == 1
    assert evaluate_expression("for(x, [1, 2], $ = x)", MapResolver({'y': 0})) == 2


## ASSERT
def test_assert():
    assert evaluate_expression("assert(1 < 2)") == 1
    with pytest.raises(AssertException, match="nope") as info:
        evaluate_expression("assert(1 > 2, 'nope')")
    assert isinstance(info.value, AssertionError)
    with pytest.raises(AssertException, match="Assertion failed"):
        evaluate_expression("assert(0)")


## STRINGS
def test_interpolate_builtin():
    assert evaluate_expression("@('Hello ${name}!')", {'name': 'World'}) == 'Hello World!'
    assert evaluate_expression("@('${a} + ${b} = ${a + b}')", {'a': 1, 'b': 2}) == '1 + 2 = 3'


def test_smart_interpolate_builtin_keeps_raw_values():
    assert evaluate_expression("$('${x}')", {'x': [1, 2]}) == [1, 2]
    assert evaluate_expression("$('v=${x}')", {'x': [1, 2]}) == 'v=[1, 2]'


@pytest.mark.parametrize("source, expected", [
    ("#('abc')", 3),
    ("#([1, 2])", 2),
    ("#({a = 1})", 1),
    ("#('')", 0),
])
def test_size(source, expected):
    assert evaluate_expression(source) == expected


def test_size_of_number_raises():
    with pytest.raises(EvaluationException):
        evaluate_expression("#(5)")


## COERCIONS
@pytest.mark.parametrize("source, expected", [
    ("double('2.5')", 2.5),
    ("double(3) / 2", 1.5),
    ("long('0x10')", 16),
    ("long(' 12 ')", 12),
    ("long(2.7)", 2),
    ("long(-2.7)", -2),
    ("long('1.5')", 1),
    ("string(12) + 'px'", '12px'),
    ("string([1, 'a'])", '[1, a]'),
    ("string(2.50)", '2.5'),
])
def test_coercions(source, expected):
    result = evaluate_expression(source)
    assert result == expected and type(result) is type(expected)


@pytest.mark.parametrize("source", ["double('abc')", "long('12abc')", "long(true)", "double([1])"])
def test_bad_coercions(source):
    with pytest.raises(CastException):
        evaluate_expression(source)


## MATH
@pytest.mark.parametrize("source, expected", [
    ("math.ceil(2.3)", 3),
    ("math.floor(-2.5)", -3),
    ("math.round(2.5)", 3),
    ("math.round(-2.5)", -2),
    ("math.abs(-3)", 3),
    ("math.sqrt(16)", 4),
    ("math.pow(2, 10)", 1024),
    ("math.min(4, 2.5)", 2.5),
    ("math.max(1, 5, 3)", 5),
    ("math.log(math.e)", 1),
    ("math.exp(0)", 1),
])
def test_math(source, expected):
    assert evaluate_expression(source) == expected


def test_math_constants():
    assert evaluate_expression("math.pi") == math.pi
    assert evaluate_to_string("math.e").startswith('2.718')


@pytest.mark.parametrize("source", ["math.sqrt(-1)", "math.log(0)", "math.max()", "math.pow(10, 1000)"])
def test_math_domain_errors(source):
    with pytest.raises(EvaluationException, match="math"):
        evaluate_expression(source)


def test_math_requires_numbers():
    with pytest.raises(CastException):
        evaluate_expression("math.ceil('a')")


def test_trace_flag_prints_calls(capsys):
    assert evaluate_expression("format('%d', 5)", flags=EvalFlags.TRACE) == '5'
    err = capsys.readouterr().err
    assert "format('%d', 5)" in err and "=>" in err
