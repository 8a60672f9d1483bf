## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import sys
import contextlib
from typing import Any, Iterator

from .types import Value, Target, Domain, EvalFlags, Lambda, NIL, is_true
from .errors import EvaluationException, SyntaxErrorException, MissingSymbolException
from .stream import CharStream, RESERVED_WORDS, describe
from .operators import BINARY, op_neg, op_not, op_index, op_member, type_name
from .functions import Function, ArgList
from .resolvers import Resolver, as_resolver
from .builtins import BUILTINS, OBJECT_CONSTRUCTOR, ARRAY_CONSTRUCTOR
from .formatting import format_item


_EQUALITY = ('==', '~=')
_RELATIONAL = ('<=', '>=', '<', '>')
_ADDITIVE = ('+', '-')
_MULTIPLICATIVE = ('*', '/', '%')
_OPERATOR_CHARS = frozenset('+-*/%&|?<>=~!,.')


class Evaluator:
    """Recursive-descent parser that evaluates as it reads.

    Every level returns a `Value`.  Operands that a logical operator does not need are read in skip mode:
    the text is still parsed for well-formedness, but nothing is looked up, called, or assigned.
    """

    def __init__(self, text: str, resolver: Resolver, flags: EvalFlags = EvalFlags.NONE):
        self.stream = CharStream(text)
        self.resolver = resolver
        self.flags = EvalFlags(flags)
        self.skipping = 0
        self.depth = 0

    @property
    def ignore_undefined(self) -> bool:
        return bool(self.flags & EvalFlags.IGNORE_UNDEFINED)

    @contextlib.contextmanager
    def skipped(self):
        self.skipping += 1
        try:
            yield
        finally:
            self.skipping -= 1

    @contextlib.contextmanager
    def located(self, position: int):
        try:
            yield
        except EvaluationException as exc:
            exc.locate(self.stream.text, position)
            raise

    def run(self) -> Value:
        try:
            value = self.sequence()
            self.stream.skip_blanks()
            if not self.stream.at_end():
                ch = self.stream.peek()
                if ch in ')]}':
                    raise self.stream.error(f"Unbalanced '{ch}'")
                raise self.stream.error(f"Unexpected {describe(ch)} after expression")
        except EvaluationException as exc:
            exc.locate(self.stream.text, self.stream.pos)
            raise
        return value.normalized()

    # Tokens ──────────────────────────────────────────────────────────────────────────────────
    def _consume(self, ch: str) -> bool:
        self.stream.skip_blanks()
        if self.stream.peek() == ch:
            self.stream.advance()
            return True
        return False

    def _expect(self, ch: str) -> None:
        if not self._consume(ch):
            raise self.stream.error(f"Expected '{ch}', got {describe(self.stream.peek())}")

    def _operator(self, candidates: tuple[str, ...]) -> str | None:
        self.stream.skip_blanks()
        text, pos = self.stream.text, self.stream.pos
        for op in candidates:
            if text.startswith(op, pos):
                self.stream.pos += len(op)
                return op
        return None

    def _assignment_follows(self) -> bool:
        pos = self.stream.pos
        self.stream.skip_blanks()
        follows = self.stream.peek() == '=' and self.stream.peek(1) != '='
        self.stream.pos = pos
        return follows

    # Levels ──────────────────────────────────────────────────────────────────────────────────
    def sequence(self) -> Value:
        value = self.assignment()
        while self._consume(','):
            value = self.assignment()
        return value

    def assignment(self) -> Value:
        start = self.stream.pos
        target = self.logical()
        if not self._assignment_follows():
            return target
        self.stream.skip_blanks()
        position = self.stream.pos
        self.stream.advance()

        if self.skipping:
            self.assignment()
            return NIL
        if target.target is None:
            raise self.stream.error("Left side of assignment is not assignable", position=start)
        resolver, name, domain = target.target
        if not resolver.is_writable(domain, name):
            raise self.stream.error(f"Cannot assign '{name}': {domain.value} domain is not writable",
                                    EvaluationException, position=start)

        value_start = self.stream.pos
        value = self.assignment().normalized()
        if value.is_named_nil and not self.ignore_undefined:
            raise MissingSymbolException(value.name).locate(self.stream.text, value_start)
        with self.located(position):
            resolver.set(name, value.payload, domain)
        return Value(value.payload)

    def logical(self) -> Value:
        left = self.equality()
        while True:
            self.stream.skip_blanks()
            op = self.stream.peek()
            if op not in ('&', '|', '?'):
                return left
            self.stream.advance()

            if self.skipping:
                self.equality()
                continue
            match op:
                case '&': decided = not is_true(left.payload)
                case '|': decided = is_true(left.payload)
                case _: decided = left.payload is not None
            if decided:
                with self.skipped():
                    self.equality()
            else:
                left = self.equality()

    def _binary(self, operand, operators: tuple[str, ...]) -> Value:
        left = operand()
        while (op := self._operator(operators)) is not None:
            position = self.stream.pos - len(op)
            right = operand()
            if not self.skipping:
                with self.located(position):
                    left = BINARY[op](left, right)
        return left

    def equality(self) -> Value:
        return self._binary(self.relational, _EQUALITY)

    def relational(self) -> Value:
        return self._binary(self.additive, _RELATIONAL)

    def additive(self) -> Value:
        return self._binary(self.term, _ADDITIVE)

    def term(self) -> Value:
        return self._binary(self.unary, _MULTIPLICATIVE)

    def unary(self) -> Value:
        self.stream.skip_blanks()
        op, position = self.stream.peek(), self.stream.pos
        if op not in ('-', '!'):
            return self.factor()
        self.stream.advance()
        value = self.unary()
        if self.skipping:
            return NIL
        with self.located(position):
            return op_neg(value) if op == '-' else op_not(value)

    def factor(self) -> Value:
        self.stream.skip_blanks()
        start = self.stream.pos
        value = self.primary()
        while True:
            self.stream.skip_blanks()
            position = self.stream.pos
            match self.stream.peek():
                case '[':
                    self.stream.advance()
                    key = self.sequence()
                    self._expect(']')
                    if not self.skipping:
                        with self.located(position):
                            value = op_index(value, key.normalized())
                case '(':
                    self.stream.advance()
                    value = self.call(value, start)
                case '.':
                    self.stream.advance()
                    self.stream.skip_blanks()
                    member = self.stream.read_identifier()
                    if not self.skipping:
                        with self.located(position):
                            value = op_member(value, member, self.resolver)
                case _:
                    return value

    def primary(self) -> Value:
        stream = self.stream
        ch = stream.peek()
        if ch.isdigit() or (ch == '.' and stream.peek(1).isdigit()):
            return Value(stream.read_number())
        if ch in ('"', "'"):
            return Value(stream.read_string())
        if ch == '(':
            stream.advance()
            value = self.sequence()
            self._expect(')')
            return value.normalized()
        if ch == '{':
            stream.advance()
            return self.invoke(OBJECT_CONSTRUCTOR, '{}', stream.pos - 1)
        if ch == '[':
            stream.advance()
            return self.invoke(ARRAY_CONSTRUCTOR, '[]', stream.pos - 1)
        if ch == ':' or stream.is_identifier_start(ch):
            domain = stream.read_domain_prefix()
            word, name = stream.read_reserved_or_identifier()
            if word is not None:
                return Value(RESERVED_WORDS[word])
            return self.symbol(name, domain)

        if ch == '':
            raise stream.error("Unexpected end of input")
        if ch in ')]}':
            raise stream.error(f"Unbalanced '{ch}'")
        if ch in _OPERATOR_CHARS:
            raise stream.error(f"Unexpected operator '{ch}'")
        raise stream.error(f"Unexpected character '{ch}'")

    def symbol(self, name: str, domain: Domain) -> Value:
        if self.skipping:
            return NIL
        target = Target(self.resolver, name, domain)
        if self._assignment_follows():
            return Value(None, name=name, target=target)
        if domain is Domain.DEFAULT and name in BUILTINS:
            return Value(BUILTINS[name], name=name)
        return Value(self.resolver.get(name, domain), name=name, target=target)

    # Calls ───────────────────────────────────────────────────────────────────────────────────
    def call(self, value: Value, position: int) -> Value:
        if self.skipping:
            self.skip_arguments(',', ')')
            return NIL
        if not isinstance(value.payload, Function):
            if value.is_named_nil:
                raise MissingSymbolException(value.name).locate(self.stream.text, position)
            raise self.stream.error(f"Cannot call '{value.name or type_name(value.payload)}': not a function",
                                    EvaluationException, position=position)
        return self.invoke(value.payload, value.name or value.payload.name, position)

    def skip_arguments(self, arg_sep: str, arg_end: str) -> None:
        while True:
            self.stream.read_lambda(arg_sep, arg_end)
            if self.stream.advance() == arg_end:
                return

    def invoke(self, function: Function, symbol: str, position: int) -> Value:
        """Read the arguments of `function` up to its closing bracket, then call it."""
        if self.skipping:
            self.skip_arguments(function.arg_sep, function.arg_end)
            return NIL

        with self.located(position):
            args = self.arguments(function, symbol)
            self.depth += 1
            try:
                result = function.invoke(self.resolver, args)
            finally:
                self.depth -= 1
        if self.flags & EvalFlags.TRACE:
            print(f"\033[90m{self.depth:>3} :\033[0m  {args!r} \033[90m=>\033[0m {format_item(result.payload)}",
                  file=sys.stderr)
        return result

    def arguments(self, function: Function, symbol: str) -> ArgList:
        args = function.new_args(symbol, self.resolver, self.flags)
        stream = self.stream
        if self._consume(function.arg_end):
            return args

        outer, self.resolver = self.resolver, args.resolver
        try:
            while True:
                stream.skip_blanks()
                start, cls = stream.pos, args.peek()
                if isinstance(cls, type) and issubclass(cls, Lambda):
                    text = stream.read_lambda(function.arg_sep, function.arg_end)
                    args.add(cls(text.strip(), self.flags))
                else:
                    value = self.assignment().normalized()
                    if value.is_named_nil and not self.ignore_undefined:
                        raise MissingSymbolException(value.name).locate(stream.text, start)
                    with self.located(start):
                        args.add(value.payload)

                stream.skip_blanks()
                ch = stream.advance()
                if ch == function.arg_end:
                    return args
                if ch != function.arg_sep:
                    raise stream.error(f"Expected '{function.arg_sep}' or '{function.arg_end}' in call to "
                                       f"{symbol}, got {describe(ch)}", position=stream.pos - len(ch))
        finally:
            self.resolver = outer


# Entry points ────────────────────────────────────────────────────────────────────────────────
def evaluate_value(text: str, resolver=None, flags: EvalFlags = EvalFlags.NONE) -> Value:
    return Evaluator(text, as_resolver(resolver), flags).run()

def evaluate_expression(text: str, resolver=None, flags: EvalFlags = EvalFlags.NONE) -> Any:
    """Parse and evaluate `text`, returning the resulting payload with integer demotion applied."""
    return evaluate_value(text, resolver, flags).payload

def evaluate_to_string(text: str, resolver=None, flags: EvalFlags = EvalFlags.NONE) -> str | None:
    value = evaluate_value(text, resolver, flags)
    return None if value.is_nil else format_item(value.payload)


# Interpolation ───────────────────────────────────────────────────────────────────────────────
def template_segments(template: str) -> Iterator[tuple[str, str | None]]:
    """Split a template into `(text, None)` literals and `(raw, expression)` for each `${…}`."""
    stream, literal = CharStream(template), []
    while not stream.at_end():
        ch = stream.advance()
        if ch != '$' or stream.peek() not in ('$', '{'):
            literal.append(ch)
            continue
        if stream.peek() == '$':
            stream.advance()
            literal.append('$')
            continue

        start = stream.pos - 1
        stream.advance()
        if literal:
            yield ''.join(literal), None
            literal = []
        try:
            expression = stream.read_lambda('}', '}')
        except SyntaxErrorException:
            raise SyntaxErrorException("Unterminated '${' in template", source=template, position=start) from None
        stream.advance()
        yield template[start:stream.pos], expression

    if literal:
        yield ''.join(literal), None


def _substitute(raw: str, expression: str, resolver, flags: EvalFlags) -> Value | str:
    value = evaluate_value(expression, resolver, flags)
    if value.is_named_nil:
        if flags & EvalFlags.IGNORE_UNDEFINED:
            return raw
        raise MissingSymbolException(value.name)
    return value

def interpolate(template: str, resolver=None, flags: EvalFlags = EvalFlags.NONE) -> str:
    resolver, out = as_resolver(resolver), []
    for raw, expression in template_segments(template):
        if expression is None:
            out.append(raw)
            continue
        value = _substitute(raw, expression, resolver, flags)
        if isinstance(value, str):
            out.append(value)
        elif not value.is_nil:
            out.append(format_item(value.payload))
    return ''.join(out)

def smart_interpolate(template: str, resolver=None, flags: EvalFlags = EvalFlags.NONE) -> Any:
    """Like `interpolate`, but a template made of a single `${…}` yields the raw value."""
    segments = list(template_segments(template))
    if len(segments) == 1 and (expression := segments[0][1]) is not None:
        value = _substitute(segments[0][0], expression, as_resolver(resolver), flags)
        return value if isinstance(value, str) else value.payload
    return interpolate(template, resolver, flags)
