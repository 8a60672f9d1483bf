## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import importlib

import pytest


@pytest.mark.parametrize("module", [
    'errors', 'types', 'stream', 'resolvers', 'operators', 'functions', 'formatting',
    'printf', 'builtins', 'evaluator', 'runtime', 'api', '__main__',
])
def test_module_imports(module):
    assert importlib.import_module(f"slexpr.{module}").__name__ == f"slexpr.{module}"
