## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# slexpr — `printf`-style formatting for the `format()` built-in, after java.util.Formatter.
#

import enum
import math
from typing import Any
from dataclasses import dataclass

import lark

from .types import is_number
from .errors import (
    IllegalFormatException, DuplicateFormatFlagsException, UnknownFormatConversionException,
    MissingFormatWidthException, FormatFlagsConversionMismatchException, IllegalFormatFlagsException,
    IllegalFormatPrecisionException, IllegalFormatWidthException, IllegalFormatCodePointException,
    IllegalFormatConversionException, MissingFormatArgumentException,
)
from .formatting import format_item


GRAMMAR = r"""start: (TEXT | specifier)*
specifier: "%" arg_index? flags? width? precision? CONVERSION
arg_index: INDEX | LAST
flags: FLAG+
width: WIDTH
precision: PRECISION

INDEX.2: /[0-9]+\$/
LAST: "<"
FLAG: /[-#+ 0,(]/
WIDTH: /[1-9][0-9]*/
PRECISION: /\.[0-9]+/
CONVERSION: /[a-zA-Z%]/
TEXT: /[^%]+/
"""

_PARSER = lark.Lark(GRAMMAR, start='start', parser='lalr', lexer='contextual')

LAST_ARGUMENT = -1


class ConversionKind(enum.Enum):
    GENERAL = 'general'
    CHARACTER = 'character'
    INTEGRAL = 'integral'
    FLOATING = 'floating'
    PERCENT = 'percent'
    LINE = 'line'


_K = ConversionKind
CONVERSIONS = {
    'b': _K.GENERAL, 'h': _K.GENERAL, 's': _K.GENERAL,
    'c': _K.CHARACTER,
    'd': _K.INTEGRAL, 'o': _K.INTEGRAL, 'x': _K.INTEGRAL,
    'e': _K.FLOATING, 'f': _K.FLOATING, 'g': _K.FLOATING,
    '%': _K.PERCENT, 'n': _K.LINE,
}
UPPERCASE = frozenset('BHSCXEG')

# Flags accepted per conversion; everything else is a mismatch.
ALLOWED_FLAGS = {
    'b': '-', 'h': '-', 's': '-', 'c': '-', '%': '-', 'n': '',
    'd': '-+ 0,(', 'o': '-#0', 'x': '-#0',
    'e': '-#+ 0(', 'f': '-#+ 0,(', 'g': '-+ 0,(',
}


@dataclass
class FormatToken:
    conversion: str
    flags: str = ''
    width: int | None = None
    precision: int | None = None
    arg_index: int | None = None
    text: str = ''

    @property
    def kind(self) -> ConversionKind:
        return CONVERSIONS[self.conversion.lower()]

    @property
    def requires_argument(self) -> bool:
        return self.kind not in (ConversionKind.PERCENT, ConversionKind.LINE)

    def has(self, flag: str) -> bool:
        return flag in self.flags


class _TokenBuilder(lark.Transformer):
    def start(self, items):
        return list(items)

    def TEXT(self, tok):
        return str(tok)

    def specifier(self, items):
        token = FormatToken(conversion='')
        for item in items:
            match item:
                case ('index', value): token.arg_index = value
                case ('flags', value): token.flags = value
                case ('width', value): token.width = value
                case ('precision', value): token.precision = value
                case lark.Token(type='CONVERSION'): token.conversion = str(item)
        token.text = _specifier_text(token)
        return token

    def arg_index(self, items):
        [tok] = items
        return ('index', LAST_ARGUMENT if tok.type == 'LAST' else int(tok[:-1]))

    def flags(self, items):
        seen = ''
        for flag in map(str, items):
            if flag in seen:
                raise DuplicateFormatFlagsException(flag)
            seen += flag
        return ('flags', seen)

    def width(self, items):
        return ('width', int(items[0]))

    def precision(self, items):
        return ('precision', int(items[0][1:]))


def _specifier_text(token: FormatToken) -> str:
    index = '' if token.arg_index is None else ('<' if token.arg_index == LAST_ARGUMENT else f"{token.arg_index}$")
    width = '' if token.width is None else str(token.width)
    precision = '' if token.precision is None else f".{token.precision}"
    return f"%{index}{token.flags}{width}{precision}{token.conversion}"


def parse_format(pattern: str) -> list[str | FormatToken]:
    """Split a pattern into literal text and `FormatToken` items."""
    try:
        tree = _PARSER.parse(pattern)
    except lark.exceptions.UnexpectedInput as exc:
        pos = getattr(exc, 'pos_in_stream', None) or len(pattern)
        raise UnknownFormatConversionException(pattern[pos:pos+1] or '%') from None
    try:
        return _TokenBuilder().transform(tree)
    except lark.exceptions.VisitError as exc:
        raise exc.orig_exc from None


def format_values(pattern: str, args: list[Any]) -> str:
    out = []
    ordinary, last, has_last = 0, None, False
    for item in parse_format(pattern):
        if isinstance(item, str):
            out.append(item)
            continue
        if item.conversion.lower() not in CONVERSIONS:
            raise UnknownFormatConversionException(item.conversion)
        argument = None
        if item.requires_argument:
            if item.arg_index == LAST_ARGUMENT:
                if not has_last:
                    raise MissingFormatArgumentException('<')
                argument = last
            else:
                if item.arg_index is None:
                    index, ordinary = ordinary, ordinary + 1
                else:
                    index = item.arg_index - 1
                if not 0 <= index < len(args):
                    raise MissingFormatArgumentException(item.text)
                argument = args[index]
            last, has_last = argument, True
        out.append(format_token(item, argument))
    return ''.join(out)


def _check_flags(token: FormatToken) -> None:
    allowed = ALLOWED_FLAGS[token.conversion.lower()]
    if bad := [f for f in token.flags if f not in allowed]:
        raise FormatFlagsConversionMismatchException(bad[0], token.conversion)
    if (token.has('-') and token.has('0')) or (token.has('+') and token.has(' ')):
        raise IllegalFormatFlagsException(token.flags)
    if (token.has('-') or token.has('0')) and token.width is None:
        raise MissingFormatWidthException(token.text)


def _justify(token: FormatToken, text: str) -> str:
    if token.width is None or len(text) >= token.width:
        return text
    return text.ljust(token.width) if token.has('-') else text.rjust(token.width)


def format_token(token: FormatToken, arg: Any) -> str:
    conversion = token.conversion.lower()
    if token.kind is ConversionKind.LINE:
        if token.flags:
            raise IllegalFormatFlagsException(token.flags)
        if token.width is not None:
            raise IllegalFormatWidthException(token.width)
        return '\n'
    _check_flags(token)

    match token.kind:
        case ConversionKind.PERCENT:
            if token.precision is not None:
                raise IllegalFormatPrecisionException(token.precision)
            result = _justify(token, '%')
        case ConversionKind.GENERAL:
            result = _justify(token, _truncate(token, _general(conversion, arg)))
        case ConversionKind.CHARACTER:
            if token.precision is not None:
                raise IllegalFormatPrecisionException(token.precision)
            result = _justify(token, _character(token, arg))
        case ConversionKind.INTEGRAL:
            if token.precision is not None:
                raise IllegalFormatPrecisionException(token.precision)
            result = 'nil' if arg is None else _integral(token, conversion, arg)
            result = _justify(token, result)
        case ConversionKind.FLOATING:
            result = 'nil' if arg is None else _floating(token, conversion, arg)
            result = _justify(token, result)
        case _:
            raise IllegalFormatException(f"Unsupported conversion '{token.conversion}'")

    return result.upper() if token.conversion in UPPERCASE else result


def _truncate(token: FormatToken, text: str) -> str:
    return text if token.precision is None else text[:token.precision]

def _general(conversion: str, arg: Any) -> str:
    if conversion == 'b':
        return 'false' if arg is None else ('true' if not isinstance(arg, bool) else str(arg).lower())
    if arg is None:
        return 'nil'
    if conversion == 'h':
        return f"{hash(arg) & 0xFFFFFFFF:x}"
    return format_item(arg)


def _character(token: FormatToken, arg: Any) -> str:
    if arg is None:
        return 'nil'
    if isinstance(arg, str) and len(arg) == 1:
        return arg
    if isinstance(arg, int) and not isinstance(arg, bool):
        if not 0 <= arg <= 0x10FFFF:
            raise IllegalFormatCodePointException(arg)
        char = chr(arg)
        # "Printable" is the host's notion (Unicode categories via `str.isprintable`).
        if not char.isprintable():
            raise IllegalFormatCodePointException(arg)
        return char
    raise IllegalFormatConversionException(token.conversion, type(arg).__name__)


def _numeric(token: FormatToken, digits: str, negative: bool) -> str:
    prefix, suffix = '', ''
    if negative:
        if token.has('('): prefix, suffix = '(', ')'
        else: prefix = '-'
    elif token.has('+'): prefix = '+'
    elif token.has(' '): prefix = ' '
    if token.has('0') and token.width is not None:
        digits = digits.rjust(token.width - len(prefix) - len(suffix), '0')
    return prefix + digits + suffix


def _integral(token: FormatToken, conversion: str, arg: Any) -> str:
    if not isinstance(arg, int) or isinstance(arg, bool):
        raise IllegalFormatConversionException(token.conversion, type(arg).__name__)
    if conversion == 'd':
        digits = f"{abs(arg):,d}" if token.has(',') else str(abs(arg))
        return _numeric(token, digits, arg < 0)

    # Octal and hexadecimal print the 64-bit two's complement of negative values.
    unsigned = arg & 0xFFFFFFFFFFFFFFFF
    digits = f"{unsigned:o}" if conversion == 'o' else f"{unsigned:x}"
    if token.has('#'):
        digits = ('0' if conversion == 'o' else '0x') + digits
    return _numeric(token, digits, False)


def _floating(token: FormatToken, conversion: str, arg: Any) -> str:
    if not is_number(arg):
        raise IllegalFormatConversionException(token.conversion, type(arg).__name__)
    x = float(arg)
    if math.isnan(x):
        return 'NaN'
    if math.isinf(x):
        return _numeric(token.__class__(token.conversion, token.flags.replace('0', '')), 'Infinity', x < 0)

    precision = 6 if token.precision is None else token.precision
    grouping = ',' if token.has(',') else ''
    magnitude = abs(x)
    match conversion:
        case 'e':
            digits = f"{magnitude:.{precision}e}"
        case 'f':
            digits = f"{magnitude:{grouping}.{precision}f}"
        case _:
            precision = max(precision, 1)
            exponent = int(f"{magnitude:.{precision - 1}e}".split('e')[1]) if magnitude else 0
            if -4 <= exponent < precision:
                digits = f"{magnitude:{grouping}.{precision - 1 - exponent}f}"
            else:
                digits = f"{magnitude:.{precision - 1}e}"
    return _numeric(token, digits, math.copysign(1.0, x) < 0 and x != 0)
