## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from slexpr.types import Domain
from slexpr.errors import EvaluationException
from slexpr.resolvers import MapResolver, ChainedResolver, LoopResolver, ObjectResolver, as_resolver


def test_map_resolver_writable_only_in_default_domain():
    resolver = MapResolver(writable=True)
    assert resolver.is_writable(Domain.DEFAULT)
    assert not resolver.is_writable(Domain.LOCAL)
    resolver.set('x', 1)
    assert resolver.get('x') == 1
    with pytest.raises(EvaluationException):
        resolver.set('x', 2, Domain.GLOBAL)


def test_read_only_map_resolver_rejects_writes():
    with pytest.raises(EvaluationException, match="not writable"):
        MapResolver({'x': 1}).set('x', 2)


def test_chained_resolver_prefix_and_fallbacks():
    env = MapResolver({'HOME': '/root'})
    chain = ChainedResolver(MapResolver({'a': 1}), MapResolver({'a': 2, 'b': 3}))
    chain.add_prefix('env', env)
    assert chain.get('a') == 1
    assert chain.get('b') == 3
    assert chain.get('env.HOME') == '/root'
    assert chain.get('env') is env
    assert chain.get('missing') is None


def test_chained_resolver_writable_scope_per_domain():
    scope = MapResolver(writable=True)
    chain = ChainedResolver().set_writable(Domain.DEFAULT, scope)
    assert chain.is_writable(Domain.DEFAULT)
    assert not chain.is_writable(Domain.GLOBAL)
    chain.set('x', 5)
    assert chain.get('x') == 5 and scope.get('x') == 5
    with pytest.raises(EvaluationException):
        chain.set('y', 1, Domain.LOCAL)


def test_chained_resolver_refuses_cycles():
    outer = ChainedResolver()
    inner = ChainedResolver(outer)
    with pytest.raises(EvaluationException, match="cycle"):
        outer.add(inner)
    with pytest.raises(EvaluationException):
        outer.add_prefix('self', outer)


def test_loop_resolver_binds_variable_and_delegates():
    parent = MapResolver({'y': 2}, writable=True)
    loop = LoopResolver(parent, 'i', Domain.DEFAULT)
    loop.bind(10)
    assert loop.get('i') == 10
    assert loop.get('y') == 2
    loop.set('$', 3)
    assert loop.result == 3 and parent.get('$') is None
    loop.set('z', 4)
    assert parent.get('z') == 4
    loop.set('w', 5, Domain.LOCAL)
    assert loop.get('w', Domain.LOCAL) == 5 and parent.get('w') is None


def test_loop_resolver_advertises_what_it_can_store():
    loop = LoopResolver(MapResolver({'y': 2}), 'i', Domain.DEFAULT)
    assert loop.is_writable(Domain.DEFAULT, '$')
    assert loop.is_writable(Domain.GLOBAL, '$')
    assert loop.is_writable(Domain.DEFAULT, 'i')
    assert loop.is_writable(Domain.LOCAL, 'w')
    assert not loop.is_writable(Domain.DEFAULT, 'y')
    assert not loop.is_writable(Domain.GLOBAL, 'i')
    assert LoopResolver(MapResolver(writable=True)).is_writable(Domain.DEFAULT, 'y')


def test_loop_variable_in_local_domain():
    loop = LoopResolver(MapResolver(), 'i', Domain.LOCAL)
    loop.bind(1)
    assert loop.get('i', Domain.LOCAL) == 1
    assert loop.get('i') == 1
    assert loop.get('i', Domain.GLOBAL) is None


def test_object_resolver_collects_default_members():
    parent = MapResolver({'outer': 1}, writable=True)
    obj = ObjectResolver(parent)
    obj.set('a', 3)
    assert obj.members == {'a': 3}
    assert obj.get('a') == 3 and obj.get('outer') == 1
    # LOCAL writes pass through to the parent, which refuses them.
    with pytest.raises(EvaluationException):
        obj.set('b', 4, Domain.LOCAL)
    assert 'b' not in obj.members


def test_as_resolver():
    assert as_resolver({'a': 1}).get('a') == 1
    assert as_resolver(None).get('a') is None
    with pytest.raises(TypeError):
        as_resolver(42)
