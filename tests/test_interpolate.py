## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from slexpr.types import EvalFlags
from slexpr.errors import SyntaxErrorException, MissingSymbolException
from slexpr.evaluator import interpolate, smart_interpolate, template_segments


def test_segments():
    assert list(template_segments("a ${x} b")) == [('a ', None), ('${x}', 'x'), (' b', None)]
    assert list(template_segments("$$${y}$")) == [('$', None), ('${y}', 'y'), ('$', None)]
    assert list(template_segments("${ {a = 1}.a }")) == [('${ {a = 1}.a }', ' {a = 1}.a ')]


@pytest.mark.parametrize("template, expected", [
    ("plain", "plain"),
    ("", ""),
    ("Hello ${name}!", "Hello World!"),
    ("${n} * 2 = ${n * 2}", "21 * 2 = 42"),
    ("cost: $$${n}", "cost: $21"),
    ("lone $ sign", "lone $ sign"),
    ("${nil}|", "|"),
    ("${[1, 2]}", "[1, 2]"),
    ("${'}'}", "}"),
    ("${if(n > 20, 'big', 'small')}", "big"),
    ("${format('%03d', n)}", "021"),
])
def test_interpolate(template, expected):
    assert interpolate(template, {'name': 'World', 'n': 21}) == expected


def test_interpolate_undefined_symbol():
    with pytest.raises(MissingSymbolException):
        interpolate("value: ${missing}")
    assert interpolate("value: ${missing}", flags=EvalFlags.IGNORE_UNDEFINED) == "value: ${missing}"
    assert interpolate("${a.b} and ${n}", {'n': 1}, EvalFlags.IGNORE_UNDEFINED) == "${a.b} and 1"


def test_unterminated_expression_raises():
    with pytest.raises(SyntaxErrorException, match="Unterminated") as info:
        interpolate("abc ${x")
    assert info.value.column == 5


def test_smart_interpolate():
    assert smart_interpolate("${n}", {'n': 21}) == 21
    assert smart_interpolate("${ {a = 1} }") == {'a': 1}
    assert smart_interpolate("n=${n}", {'n': 21}) == "n=21"
    assert smart_interpolate("${missing}", flags=EvalFlags.IGNORE_UNDEFINED) == "${missing}"
    assert smart_interpolate("${nil}") is None
