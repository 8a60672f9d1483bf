## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from .types import Value, Lambda, Expression, Domain, EvalFlags, NIL
from .errors import *
from .resolvers import Resolver, MapResolver, ChainedResolver, LoopResolver, ObjectResolver
from .functions import Function, ArgList, function
from .runtime import Runtime

_RUNTIME = Runtime()

def __getattr__(name):
    return getattr(_RUNTIME, name)
