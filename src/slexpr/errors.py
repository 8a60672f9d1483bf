## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘


class EvaluationException(Exception):
    def __init__(self, message: str = "", *, source: str | None = None, position: int | None = None):
        """Base class for all errors raised while parsing or evaluating an expression."""
        super().__init__(message)
        self.message: str = message
        self.source: str | None = source
        self.position: int | None = position

    def locate(self, source: str, position: int) -> "EvaluationException":
        """Attach a source location, unless a more precise (inner) one is already known."""
        if self.position is None:
            self.source, self.position = source, position
        return self

    @property
    def line(self) -> int | None:
        if self.position is None or self.source is None: return None
        return self.source.count('\n', 0, self.position) + 1

    @property
    def column(self) -> int | None:
        if self.position is None or self.source is None: return None
        return self.position - (self.source.rfind('\n', 0, self.position) + 1) + 1

    def __str__(self):
        if self.position is None:
            return self.message
        return f"{self.message} (at line {self.line}, column {self.column})"


class SyntaxErrorException(EvaluationException):
    pass

class NilValueException(EvaluationException, ValueError):
    def __init__(self, message: str = "Nil value", **kwargs):
        super().__init__(message, **kwargs)

class MissingSymbolException(EvaluationException, NameError):
    def __init__(self, symbol: str, **kwargs):
        super().__init__(f"Symbol '{symbol}' could not be located", **kwargs)
        self.symbol = symbol

class CastException(EvaluationException, TypeError):
    pass

class AssertException(EvaluationException, AssertionError):
    pass


class IllegalFormatException(EvaluationException, ValueError):
    """Problems with a `format()` pattern or with its arguments."""
    pass

class DuplicateFormatFlagsException(IllegalFormatException):
    def __init__(self, flags: str):
        super().__init__(f"Duplicate format flags '{flags}'")
        self.flags = flags

class UnknownFormatConversionException(IllegalFormatException):
    def __init__(self, conversion: str):
        super().__init__(f"Unknown format conversion '{conversion}'")
        self.conversion = conversion

class MissingFormatWidthException(IllegalFormatException):
    def __init__(self, specifier: str):
        super().__init__(f"Missing format width in '{specifier}'")
        self.specifier = specifier

class FormatFlagsConversionMismatchException(IllegalFormatException):
    def __init__(self, flags: str, conversion: str):
        super().__init__(f"Format flags '{flags}' not applicable to conversion '{conversion}'")
        self.flags, self.conversion = flags, conversion

class IllegalFormatFlagsException(IllegalFormatException):
    def __init__(self, flags: str):
        super().__init__(f"Illegal combination of format flags '{flags}'")
        self.flags = flags

class IllegalFormatPrecisionException(IllegalFormatException):
    def __init__(self, precision: int):
        super().__init__(f"Illegal format precision {precision}")
        self.precision = precision

class IllegalFormatWidthException(IllegalFormatException):
    def __init__(self, width: int):
        super().__init__(f"Illegal format width {width}")
        self.width = width

class IllegalFormatCodePointException(IllegalFormatException):
    def __init__(self, code_point: int):
        super().__init__(f"Illegal code point {code_point:#x}")
        self.code_point = code_point

class IllegalFormatConversionException(IllegalFormatException):
    def __init__(self, conversion: str, arg_type: str):
        super().__init__(f"Conversion '{conversion}' not applicable to argument of type '{arg_type}'")
        self.conversion, self.arg_type = conversion, arg_type

class MissingFormatArgumentException(IllegalFormatException):
    def __init__(self, specifier: str):
        super().__init__(f"Missing argument for format specifier '{specifier}'")
        self.specifier = specifier
