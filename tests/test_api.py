## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import slexpr.api as S


def test_evaluate_string_add():
    assert S.evaluate("2 + 3") == 5


def test_define_and_evaluate():
    S.define('width', 4)
    assert S.evaluate("width * 2") == 8


def test_assignment_persists_in_global_scope():
    S.evaluate("counter = 1")
    S.evaluate("counter = counter + 1")
    assert S.evaluate("counter") == 2
    assert S.symbols()['counter'] == 2


def test_register_function_and_evaluate():
    def inc(x: int) -> int: return x + 1
    S.register_function('inc', inc)
    assert S.evaluate("inc(4)") == 5


def test_register_function_without_annotations():
    def double_it(x): return x * 2
    S.register_function('double_it', double_it)
    assert S.evaluate("double_it('ab')") == 'abab'


def test_register_resolver_and_evaluate():
    S.register_resolver('env', {'USER': 'alex'})
    assert S.evaluate_to_string("'user=' + env.USER") == 'user=alex'


def test_interpolate_with_runtime_scope():
    S.define('who', 'world')
    assert S.interpolate("hello ${who}") == 'hello world'
    assert S.interpolate("${nobody}", ignore_undefined=True) == '${nobody}'


def test_module_level_functions_are_exported():
    assert S.evaluate_expression("1 + 1") == 2
    assert S.evaluate_to_string("nil") is None
    assert S.EvalFlags.IGNORE_UNDEFINED and issubclass(S.MissingSymbolException, NameError)


def test_module_level_entry_points_see_runtime_symbols():
    S.define('depth', 3)
    assert S.evaluate_expression("depth + 1") == 4
    assert S.evaluate_to_string("depth * 2") == '6'
    assert S.smart_interpolate("${depth}") == 3
    assert S.smart_interpolate("${unknown}", ignore_undefined=True) == '${unknown}'
