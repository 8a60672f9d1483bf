## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from numbers import Number

import pytest

from slexpr.types import Value, Lambda, Expression
from slexpr.errors import EvaluationException, CastException
from slexpr.functions import Function, ArgList, function
from slexpr.resolvers import MapResolver, ObjectResolver


def test_fixed_arity_argument_list():
    fn = Function(lambda resolver, args: args.get(0, int) + args.get(1, int), (int, int), name='add')
    args = fn.new_args('add', MapResolver())
    args.add(1); args.add(2)
    assert fn.invoke(None, args) == Value(3)
    with pytest.raises(EvaluationException, match="too many arguments"):
        args.add(3)


def test_argument_type_mismatch_names_the_function():
    args = Function(lambda r, a: None, (int,)).new_args('inc', MapResolver())
    with pytest.raises(CastException, match=r"Function inc\(\): invalid parameter type: expected int, got str"):
        args.add('x')


def test_bool_is_not_an_integer_argument():
    args = Function(lambda r, a: None, (int,)).new_args('f', MapResolver())
    with pytest.raises(CastException):
        args.add(True)


def test_variadic_tail_repeats_last_class():
    fn = Function(lambda r, a: sum(a.values()), (Number,), variadic=True)
    args = fn.new_args('sum', MapResolver())
    for i in range(5):
        args.add(i)
    assert args.size() == len(args) == 5
    with pytest.raises(CastException):
        args.add('6')


def test_generic_functions_accept_anything():
    fn = Function(lambda r, a: len(a), None)
    assert fn.is_generic
    args = fn.new_args('g', MapResolver())
    for x in (1, 'a', None, [1], {'k': 1}):
        args.add(x)
    assert fn.invoke(None, args).payload == 5


def test_nil_is_accepted_but_rejected_by_get():
    args = Function(lambda r, a: None, (str,)).new_args('f', MapResolver())
    args.add(None)
    assert args.get_nullable(0, str) is None
    with pytest.raises(EvaluationException, match="non-nil"):
        args.get(0, str)
    with pytest.raises(EvaluationException, match="missing argument 2"):
        args.get_nullable(1)


def test_lambda_parameter_classes():
    fn = Function(lambda r, a: a.lambda_at(0).text, (Lambda, Expression))
    args = fn.new_args('f', MapResolver())
    assert args.peek() is Lambda
    args.add(Lambda('1 + 2'))
    assert args.peek() is Expression
    args.add(Expression('x'))
    assert fn.invoke(None, args).payload == '1 + 2'


def test_scope_hook_gives_each_call_its_own_resolver():
    parent = MapResolver()
    fn = Function(lambda r, a: dict(a.resolver.members), None, scope=ObjectResolver)
    args = fn.new_args('{}', parent)
    assert isinstance(args.resolver, ObjectResolver) and args.resolver.parent is parent


def test_decorator_builds_function():
    @function(str, name='shout')
    def shout(resolver, args):
        return args.get(0, str).upper()

    assert isinstance(shout, Function) and shout.name == 'shout'
    args = shout.new_args('shout', MapResolver())
    args.add('hey')
    assert shout.invoke(None, args).payload == 'HEY'


def test_from_callable_reads_annotations():
    def scale(x: float, factor: int = 2) -> float:
        return x * factor

    fn = Function.from_callable(scale)
    assert fn.params == (float, int) and fn.name == 'scale'
    args = fn.new_args('scale', MapResolver())
    args.add(1.5); args.add(3)
    assert fn.invoke(None, args).payload == 4.5


def test_from_callable_varargs_and_missing_annotations():
    def join(sep, *parts: str) -> str:
        return sep.join(parts)

    fn = Function.from_callable(join)
    assert fn.variadic and fn.params == (object, str)
    args = fn.new_args('join', MapResolver())
    for x in ('-', 'a', 'b', 'c'):
        args.add(x)
    assert fn.invoke(None, args).payload == 'a-b-c'


def test_argument_list_repr():
    args = Function(lambda r, a: None, None).new_args('f', MapResolver())
    args.add(1); args.add('x')
    assert repr(args) == "f(1, 'x')"
