## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import enum

from .types import Domain
from .errors import EvaluationException, SyntaxErrorException


EOS = ''

RESERVED_WORDS = {'true': True, 'false': False, 'nil': None}

_OPENING = {'(': ')', '[': ']', '{': '}'}
_CLOSING = frozenset(_OPENING.values())
_HEX_DIGITS = frozenset('0123456789abcdefABCDEF')
_STRING_ESCAPES = {'\\': '\\', '"': '"', "'": "'"}
_BACKTICK_ESCAPES = {'`': '`', '\\': '\\', 'B': '\\', '"': '"', 'D': '"', "'": "'", 'Q': "'"}


class _Blank(enum.Enum):
    SCAN = 1
    SLASH = 2
    BLOCK = 3
    BLOCK_STAR = 4
    LINE = 5


class _Arg(enum.Enum):
    SCAN = 1
    STRING = 2
    ESCAPE = 3


class CharStream:
    """Cursor over an immutable expression source, with readers for every lexical element."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    # Cursor ──────────────────────────────────────────────────────────────────────────────────
    def peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else EOS

    def advance(self) -> str:
        ch = self.peek()
        if ch != EOS: self.pos += 1
        return ch

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def error(self, message: str, cls=SyntaxErrorException, position: int | None = None):
        return cls(message, source=self.text, position=self.pos if position is None else position)

    def skip_blanks(self) -> None:
        state, slash = _Blank.SCAN, self.pos
        while True:
            ch = self.peek()
            match state:
                case _Blank.SCAN:
                    if ch in (' ', '\t', '\r', '\n'):
                        self.pos += 1
                    elif ch == '/':
                        state, slash = _Blank.SLASH, self.pos
                        self.pos += 1
                    else:
                        return
                case _Blank.SLASH:
                    if ch == '*':
                        state = _Blank.BLOCK
                    elif ch == '/':
                        state = _Blank.LINE
                    else:
                        # A lone slash is the division operator.
                        self.pos = slash
                        return
                    self.pos += 1
                case _Blank.BLOCK | _Blank.BLOCK_STAR:
                    if ch == EOS:
                        raise self.error("Unterminated block comment", position=slash)
                    if state is _Blank.BLOCK_STAR and ch == '/':
                        state = _Blank.SCAN
                    else:
                        state = _Blank.BLOCK_STAR if ch == '*' else _Blank.BLOCK
                    self.pos += 1
                case _Blank.LINE:
                    if ch == EOS: return
                    if ch == '\n': state = _Blank.SCAN
                    self.pos += 1

    # Identifiers ─────────────────────────────────────────────────────────────────────────────
    @staticmethod
    def is_identifier_start(ch: str) -> bool:
        return ch != EOS and (ch.isalpha() or ch in '_$#@')

    @staticmethod
    def is_identifier_part(ch: str) -> bool:
        return ch != EOS and (ch.isalnum() or ch in '_$#@')

    def read_identifier(self) -> str:
        if not self.is_identifier_start(ch := self.peek()):
            raise self.error(f"Identifier start expected, got {describe(ch)}")
        start = self.pos
        while self.is_identifier_part(self.peek()):
            self.pos += 1
        return self.text[start:self.pos]

    def read_reserved_or_identifier(self) -> tuple[str | None, str]:
        """Returns `(reserved_word, text)`; the first item is None for ordinary identifiers."""
        name = self.read_identifier()
        return (name if name in RESERVED_WORDS else None), name

    def read_domain_prefix(self) -> Domain:
        if self.peek() != ':':
            return Domain.DEFAULT
        self.pos += 1
        if self.peek() == ':':
            self.pos += 1
            return Domain.GLOBAL
        return Domain.LOCAL

    # Literals ────────────────────────────────────────────────────────────────────────────────
    def read_number(self) -> int | float:
        start = self.pos
        if self.peek() in ('+', '-'):
            self.pos += 1
        digits = self.pos
        if self.peek() == '0' and self.peek(1) in ('x', 'X'):
            self.pos += 2
            while self.peek() in _HEX_DIGITS: self.pos += 1
            return self._number(self.text[start:self.pos], start, hex_digits=self.text[digits+2:self.pos])

        while self.peek().isdigit(): self.pos += 1
        real = False
        if self.peek() == '.' and (self.peek(1).isdigit() or self.pos > digits):
            real = True
            self.pos += 1
            while self.peek().isdigit(): self.pos += 1
        if self.peek() in ('e', 'E'):
            real = True
            self.pos += 1
            if self.peek() in ('+', '-'): self.pos += 1
            if not self.peek().isdigit():
                raise self.error("Digits expected in exponent of numeric value")
            while self.peek().isdigit(): self.pos += 1
        return self._number(self.text[start:self.pos], start, real=real)

    def _number(self, text: str, start: int, real: bool = False, hex_digits: str | None = None) -> int | float:
        sign = -1 if text.startswith('-') else 1
        body = text.lstrip('+-')
        try:
            if hex_digits is not None:
                if not hex_digits:
                    raise ValueError(text)
                value = sign * int(hex_digits, 16)
            elif real:
                return float(text)
            elif len(body) > 1 and body.startswith('0'):
                value = sign * int(body, 8)
            else:
                value = sign * int(body, 10)
        except ValueError:
            raise self.error(f"Error parsing numeric value '{text}'", EvaluationException, position=start) from None
        if not -2**63 <= value < 2**63:
            raise self.error(f"Numeric value '{text}' out of range", EvaluationException, position=start)
        return value

    def read_string(self) -> str:
        start, delimiter = self.pos, self.advance()
        chars = []
        while True:
            ch = self.advance()
            if ch == EOS:
                raise self.error("Unexpected EOS reading string", position=start)
            if ch == delimiter:
                return ''.join(chars)
            if ch in ('\\', '`'):
                escapes = _STRING_ESCAPES if ch == '\\' else _BACKTICK_ESCAPES
                if (esc := self.advance()) == EOS:
                    raise self.error("Unexpected EOS reading string escape sequence", position=start)
                if esc not in escapes:
                    raise self.error(f"Unknown escape sequence: {ch}{esc}", position=self.pos - 2)
                chars.append(escapes[esc])
            else:
                chars.append(ch)

    # Lambdas ─────────────────────────────────────────────────────────────────────────────────
    def read_lambda(self, arg_sep: str = ',', arg_end: str = ')') -> str:
        """Capture text up to the first `arg_sep` or `arg_end` at bracket depth zero, without consuming it."""
        start, closers, delimiter = self.pos, [], None
        state = _Arg.SCAN
        while True:
            ch = self.peek()
            if ch == EOS:
                raise self.error("Unexpected EOS reading argument", position=start)
            match state:
                case _Arg.SCAN:
                    if not closers and ch in (arg_sep, arg_end):
                        return self.text[start:self.pos]
                    if ch in ('"', "'"):
                        state, delimiter = _Arg.STRING, ch
                    elif ch in _OPENING:
                        closers.append(_OPENING[ch])
                    elif ch in _CLOSING:
                        if not closers or closers[-1] != ch:
                            raise self.error(f"Unbalanced bracket '{ch}' in argument")
                        closers.pop()
                case _Arg.STRING:
                    if ch == delimiter:
                        state = _Arg.SCAN
                    elif ch in ('\\', '`'):
                        state = _Arg.ESCAPE
                case _Arg.ESCAPE:
                    state = _Arg.STRING
            self.pos += 1


def describe(ch: str) -> str:
    return "end of input" if ch == EOS else f"'{ch}'"
