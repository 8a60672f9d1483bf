## slexpr — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import enum
from typing import Any, NamedTuple
from dataclasses import dataclass, field, replace


class Domain(enum.Enum):
    """Scope marker of an identifier: `:x` is LOCAL, `::x` is GLOBAL, bare `x` is DEFAULT."""
    LOCAL = 'local'
    DEFAULT = 'default'
    GLOBAL = 'global'


class EvalFlags(enum.IntFlag):
    NONE = 0
    IGNORE_UNDEFINED = 1
    TRACE = 2


# Largest integer a double represents exactly; beyond this, results stay floating-point.
SAFE_INTEGER = 2**53 - 1


def is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)

def is_mathematical_integer(x: float) -> bool:
    return x == x and abs(x) != float('inf') and float(x).is_integer()

def demote(x: Any) -> Any:
    """Collapse a double to an integer when it is integral and within the safe range."""
    if isinstance(x, float) and is_mathematical_integer(x) and abs(x) <= SAFE_INTEGER:
        return int(x)
    return x

def is_true(x: Any) -> bool:
    """Truthiness: nil is false, booleans are themselves, numbers are true unless zero."""
    if x is None: return False
    if isinstance(x, bool): return x
    if is_number(x): return x != 0
    return True


class Target(NamedTuple):
    """Where an assignment to a value would be written."""
    resolver: Any
    name: str
    domain: Domain


@dataclass(frozen=True)
class Value:
    payload: Any = None
    name: str | None = None
    target: Target | None = field(default=None, compare=False, repr=False)

    @property
    def is_nil(self) -> bool:
        return self.payload is None

    @property
    def is_named_nil(self) -> bool:
        return self.payload is None and self.name is not None

    def normalized(self) -> "Value":
        return replace(self, payload=demote(self.payload))

    def anonymous(self) -> "Value":
        return Value(self.payload)


NIL = Value()


class Lambda:
    """Un-parsed sub-expression text; re-parsed against the resolver given on every evaluation."""

    def __init__(self, text: str, flags: EvalFlags = EvalFlags.NONE):
        self.text = text
        self.flags = flags

    def evaluate(self, resolver) -> Value:
        from .evaluator import evaluate_value
        return evaluate_value(self.text, resolver, self.flags)

    def read_literal(self) -> tuple[str, Domain]:
        """Interpret the text as a single, possibly domain-prefixed, identifier."""
        from .stream import CharStream
        from .errors import SyntaxErrorException

        stream = CharStream(self.text)
        stream.skip_blanks()
        domain = stream.read_domain_prefix()
        if stream.is_identifier_start(stream.peek()):
            word, name = stream.read_reserved_or_identifier()
            stream.skip_blanks()
            if word is None and stream.at_end():
                return name, domain
        raise SyntaxErrorException(f"Identifier expected, got '{self.text.strip()}'", source=self.text, position=stream.pos)

    def __eq__(self, other):
        return isinstance(other, Lambda) and type(self) is type(other) and self.text == other.text

    def __hash__(self):
        return hash((type(self), self.text))

    def __repr__(self):
        return f"{type(self).__name__}({self.text!r})"


class Expression(Lambda):
    """Parameter class for arguments passed as text, with the same semantics as a `Lambda`."""
    pass
