"""Command line front end: translate headers and print the LFE forms.

    python -m lfe_include [-I DIR] [--legacy-records] file.hrl ...
    python -m lfe_include --expand "(FOO 42)" file.hrl
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from lfe_include import include
from lfe_include.config import get_include_path, get_log_level
from lfe_include.errors import LfeIncludeError
from lfe_include.expand import expand_macro
from lfe_include.printer import print1
from lfe_include.reader.parser import read_string
from lfe_include.types.forms import Symbol
from lfe_include.types.state import MacroState

_LOG_FORMAT = "{level:<7} | {name}:{function}:{line} | {message}"


def configure_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else get_log_level(),
        format=_LOG_FORMAT,
        backtrace=False,
        diagnose=False,
    )


def find_macro(forms, name: Symbol):
    for form in forms:
        if isinstance(form, list) and len(form) > 2 and form[0] == Symbol("defmacro") and form[1] == name:
            return form
    return None


def translate(path: str, st: MacroState, legacy_records: bool):
    forms, st = include.read_hrl_file(Path(path), st, legacy_records or None)
    for d in st.warnings:
        print(f"{path}:{include.format_diagnostic(d)} (warning)", file=sys.stderr)
    for d in st.errors:
        print(f"{path}:{include.format_diagnostic(d)}", file=sys.stderr)
    return forms, st


def expand(forms, call_text: str) -> str:
    calls = read_string(call_text)
    if len(calls) != 1 or not isinstance(calls[0], list) or not calls[0]:
        raise LfeIncludeError(f"--expand wants one call form, got {call_text!r}")
    name, *args = calls[0]
    macro = find_macro(forms, name)
    if macro is None:
        raise LfeIncludeError(f"no macro {name} in the translated header")
    return print1(expand_macro(macro, args))


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="lfe_include",
        description="Translate Erlang header files (.hrl) into LFE forms"
    )
    parser.add_argument('files', nargs='+', help='Header files to translate')
    parser.add_argument('-I', '--include', action='append', default=[], metavar='DIR',
                        help='Add a directory to the include path (before LFE_INCLUDE_PATH)')
    parser.add_argument('--legacy-records', action='store_true',
                        help='Fold typed records into type attributes, as old compilers did')
    parser.add_argument('-e', '--expand', metavar='CALL',
                        help='Expand a macro call such as "(FOO 42)" instead of printing forms')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    ipath = [Path(d) for d in args.include] + get_include_path()
    failed = False
    for path in args.files:
        st = MacroState().with_ipath(ipath)
        forms, st = translate(path, st, args.legacy_records)
        if forms is None:
            failed = True
            continue
        if args.expand:
            try:
                print(expand(forms, args.expand))
            except LfeIncludeError as e:
                print(f"Error: {e}", file=sys.stderr)
                failed = True
            continue
        for form in forms:
            print(print1(form))
    if failed:
        sys.exit(1)


if __name__ == '__main__':
    main()
