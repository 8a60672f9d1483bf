## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import re
from collections.abc import Mapping, Sequence

from .types import Lambda, demote
from .functions import Function
from .resolvers import Resolver


def format_number(x: int | float) -> str:
    """Integral values print as integers, everything else in shortest round-trip form."""
    x = demote(x)
    if isinstance(x, float) and x.is_integer():
        return repr(x).removesuffix('.0')
    return repr(x) if isinstance(x, float) else str(x)

def format_item(it) -> str:
    if it is None: return 'nil'
    if isinstance(it, bool): return str(it).lower()
    if isinstance(it, (int, float)): return format_number(it)
    if isinstance(it, str): return it
    if isinstance(it, Lambda): return it.text
    if isinstance(it, (Function, Resolver)): return repr(it)
    if isinstance(it, Mapping):
        return '{' + ', '.join(f"{format_item(k)}={format_item(v)}" for k, v in it.items()) + '}'
    if isinstance(it, (Sequence, set, frozenset)):
        return '[' + ', '.join(format_item(i) for i in it) + ']'
    return str(it)


def write_without_ansi(write_fn):
    """Wrapper function that strips ANSI codes before calling the original writer."""
    ansi_re = re.compile(r'\033\[[0-9;]*m')
    return lambda text: write_fn(ansi_re.sub('', text))


def format_error_context(filename: str, source: str, line: int, column: int, width: int = 1) -> str:
    lines = source.splitlines() or ['']
    start_line, end_line = max(0, line - 3), min(len(lines), line + 2)
    result = [f"\033[97m  File \"{filename}\", line {line}, column {column}\033[0m"]

    for i in range(start_line, end_line):
        line_content = lines[i]
        line_color = '\033[90m'
        if i+1 == line:
            line_color = '\033[97m'
            if 0 < column <= len(line_content):
                line_content = (
                    line_content[:column-1] +
                    f"\033[48;5;30m\033[1;97m{line_content[column-1:column+width-1]}\033[0m" +
                    line_content[column+width-1:]
                )
        result.append(f"{line_color}{i+1:>5} |\033[0m {line_content}")
    return '\n' + '\n'.join(result) + '\n'
