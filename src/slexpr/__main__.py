## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# slexpr — An embeddable expression language with pluggable symbol resolution.
#

import sys
import traceback
from pathlib import Path
from dataclasses import dataclass

import click

from .types import EvalFlags
from .errors import (EvaluationException, SyntaxErrorException, MissingSymbolException, AssertException,
                     IllegalFormatException)
from .formatting import write_without_ansi, format_item, format_error_context

from . import api


@dataclass(frozen=True)
class RunnerConfig:
    verbose: int
    ignore: bool
    plain: bool
    ignore_undefined: bool
    defines: tuple[str, ...] = ()


@dataclass
class ExecutionItem:
    source: str
    filename: str


def _is_incomplete(exc: SyntaxErrorException) -> bool:
    return any(marker in exc.message for marker in ('end of input', 'EOS', 'Unterminated'))


class ExpressionRunner:
    def __init__(self, config: RunnerConfig):
        self.verbose = config.verbose
        self.ignore = config.ignore
        self.plain = config.plain

        if self.plain:
            writer = write_without_ansi(sys.stdout.write)
            sys.stdout.write, sys.stderr.write = writer, writer

        self.runtime = api._RUNTIME
        self.flags = EvalFlags.NONE
        if config.verbose: self.flags |= EvalFlags.TRACE
        if config.ignore_undefined: self.flags |= EvalFlags.IGNORE_UNDEFINED
        self.failure = False
        self.executed_items = 0

        for index, define in enumerate(config.defines):
            self._define(define, f'<DEFINE_{index + 1}>')

    def _define(self, define: str, filename: str) -> None:
        name, sep, source = define.partition('=')
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected NAME=EXPR, got `{define}`.")
        try:
            self.runtime.define(name.strip(), self.runtime.evaluate(source, self.flags))
        except Exception as exc:
            self._handle_exception(exc, filename, source)

    def _maybe_fatal_error(self, message: str, detail: str, exc_type: str = None, context: str = '', is_repl: bool = False) -> None:
        header = detail if not exc_type else f"{detail} (Exception: \033[33m{exc_type}\033[0m)"
        print(f'\033[30;43m {message} \033[0m {header}\n{context}', file=sys.stderr)
        self.failure = self.failure or not is_repl
        if not is_repl and not self.ignore: sys.exit(1)

    def _context(self, exc: EvaluationException, filename: str, source: str) -> str:
        if exc.line is None:
            return ''
        # Errors raised inside a lambda or a template expression are located in that sub-expression.
        where = filename if exc.source == source else '<expression>'
        context = format_error_context(where, exc.source, exc.line, exc.column)
        return context + f"\n\033[90m{exc.message.replace(chr(10), ' ').replace(chr(9), ' ')}\033[0m\n"

    def _handle_exception(self, exc, filename: str, source: str, is_repl: bool = False) -> bool:
        if isinstance(exc, SyntaxErrorException):
            if is_repl and _is_incomplete(exc): return True
            detail = f"Parsing `\033[97m{filename}\033[0m` caused a problem!"
            self._maybe_fatal_error("SYNTAX ERROR.", detail, type(exc).__name__, self._context(exc, filename, source), is_repl)
        elif isinstance(exc, MissingSymbolException):
            detail = f"Symbol `\033[1;97m{exc.symbol}\033[0m` from `\033[97m{filename}\033[0m` could not be located!"
            self._maybe_fatal_error("MISSING SYMBOL.", detail, type(exc).__name__, self._context(exc, filename, source), is_repl)
        elif isinstance(exc, AssertException):
            detail = f"\033[1;97m{exc.message}\033[0m"
            self._maybe_fatal_error("ASSERTION FAILED.", detail, None, self._context(exc, filename, source), is_repl)
        elif isinstance(exc, IllegalFormatException):
            detail = f"Formatting in `\033[97m{filename}\033[0m` failed: {exc.message}"
            self._maybe_fatal_error("FORMAT ERROR.", detail, type(exc).__name__, self._context(exc, filename, source), is_repl)
        elif isinstance(exc, EvaluationException):
            detail = f"Evaluating `\033[97m{filename}\033[0m` failed: {exc.message}"
            self._maybe_fatal_error("EVALUATION ERROR.", detail, type(exc).__name__, self._context(exc, filename, source), is_repl)
        elif isinstance(exc, Exception):
            print(f'\033[30;43m RUNTIME ERROR. \033[0m Evaluating `\033[97m{filename}\033[0m` raised a host exception! (Exception: \033[33m{type(exc).__name__}\033[0m)', file=sys.stderr)
            traceback.print_exc()
            self.failure = self.failure or not is_repl
            if not is_repl and not self.ignore: sys.exit(1)
        return False

    def execute_items(self, items: list[ExecutionItem]) -> None:
        for item in items:
            self._execute_script(item.source, item.filename, print_result=True)

    def _execute_script(self, source: str, filename: str, is_repl: bool = False, print_result: bool = False) -> None:
        try:
            result = self.runtime.evaluate_value(source, self.flags)
            if print_result:
                print(format_item(result.payload))
        except Exception as exc:
            self._handle_exception(exc, filename, source, is_repl=is_repl)
        else:
            self.executed_items += 1

    def interpolate(self, template: str, filename: str) -> None:
        try:
            sys.stdout.write(self.runtime.interpolate(template, ignore_undefined=bool(self.flags & EvalFlags.IGNORE_UNDEFINED)))
        except Exception as exc:
            self._handle_exception(exc, filename, template)
        else:
            self.executed_items += 1

    def repl(self) -> None:
        if sys.platform != "win32": import readline

        print('slexpr - Expression evaluator REPL; type Ctrl+C to exit.')
        source = ""

        while True:
            try:
                prompt = "\033[36m<<< \033[0m" if not source.strip() else "\033[36m... \033[0m"
                line = input(prompt)
                if len(line.strip()) == 0: continue
                if line.strip() in ('quit', 'exit'): break
                source += line + "\n"

                try:
                    value = self.runtime.evaluate_value(source, self.flags)
                    print("\033[90m>>>\033[0m", format_item(value.payload))
                    source = ""
                except Exception as exc:
                    if not self._handle_exception(exc, '<REPL>', source, is_repl=True):
                        source = ""

            except (KeyboardInterrupt, EOFError):
                print(""); break

    def finalize(self) -> int:
        return 1 if self.failure else 0


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', default=0, count=True, help='Trace every function call on stderr.')
@click.option('--ignore', '-i', is_flag=True, help='Ignore errors and continue evaluating.')
@click.option('--plain', '-p', is_flag=True, help='Strip ANSI color codes and redirect stderr to stdout.')
@click.option('--ignore-undefined', '-u', is_flag=True, help='Treat undefined symbols as nil instead of failing.')
@click.option('--define', '-D', 'defines', multiple=True, metavar='NAME=EXPR', help='Define a global symbol before running.')
@click.pass_context
def cli(ctx: click.Context, verbose: int, ignore: bool, plain: bool, ignore_undefined: bool, defines: tuple[str, ...]) -> None:
    ctx.ensure_object(dict)
    ctx.obj['config'] = RunnerConfig(verbose=verbose, ignore=ignore, plain=plain,
                                     ignore_undefined=ignore_undefined, defines=defines)

    # When invoked via module entry (python -m slexpr), we route in `main()`.
    return


@cli.command('eval')
@click.argument('expressions', nargs=-1, required=True)
@click.pass_context
def eval_expressions(ctx: click.Context, expressions: tuple[str, ...]) -> None:
    runner = ExpressionRunner(ctx.obj['config'])
    runner.execute_items([ExecutionItem(expr, f'<INPUT_{i + 1}>') for i, expr in enumerate(expressions)])
    ctx.exit(runner.finalize())


@cli.command('run-file')
@click.argument('script', type=click.File('r', encoding='utf-8'))
@click.pass_context
def run_file(ctx: click.Context, script) -> None:
    runner = ExpressionRunner(ctx.obj['config'])
    runner.execute_items((ExecutionItem(script.read(), script.name or '<STDIN>'),))
    ctx.exit(runner.finalize())


@cli.command('interpolate')
@click.argument('template', type=click.File('r', encoding='utf-8'))
@click.pass_context
def interpolate_file(ctx: click.Context, template) -> None:
    runner = ExpressionRunner(ctx.obj['config'])
    runner.interpolate(template.read(), template.name or '<STDIN>')
    ctx.exit(runner.finalize())


@cli.command('repl')
@click.pass_context
def run_repl(ctx: click.Context) -> None:
    runner = ExpressionRunner(ctx.obj['config'])
    runner.repl()
    ctx.exit(runner.finalize())


COMMANDS = ('eval', 'run-file', 'interpolate', 'repl')
GLOBAL_FLAGS = ('--verbose', '--ignore', '--plain', '--ignore-undefined', '-i', '-p', '-u')


def main(argv: list[str] | None = None) -> None:
    a = list(sys.argv[1:] if argv is None else argv)
    g, r, i = [], [], 0
    while i < len(a):
        t = a[i]
        if t in ('-D', '--define') and i + 1 < len(a):
            g += [t, a[i+1]]; i += 2
            continue
        if t in GLOBAL_FLAGS or t.startswith('--define=') or (len(t) > 1 and t.strip('-v') == '' and t.startswith('-v')):
            g.append(t)
        else:
            r.append(t)
        i += 1

    if len(r) == 0:
        # No args: if stdin has data, treat as file '-', else REPL
        cmd, tail = ('run-file', ['-']) if not sys.stdin.isatty() else ('repl', [])
    elif r[0] in COMMANDS:
        cmd, tail = r[0], (['--', *r[1:]] if r[0] == 'eval' else r[1:])
    elif r == ['-']:
        cmd, tail = 'run-file', ['-']
    elif len(r) == 1 and Path(r[0]).is_file():
        cmd, tail = 'run-file', r
    else:
        cmd, tail = 'eval', ['--', *r]

    cli.main(args=[*g, cmd, *tail], prog_name='slexpr')


if __name__ == "__main__":
    main()
