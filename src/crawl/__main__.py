#!/usr/bin/env python3
"""
Command line for running Crawl programs.

Usage:
    crawl run FILE.crawl [--seed N] [--strict] [--json]
    crawl check FILE.crawl [--ast] [--json]
    crawl repl [--seed N]

Every subcommand also takes --config FILE, --verbose and --quiet.

Examples:
    # Check a file for syntax errors and show its statements
    crawl check examples/night-watch.crawl --ast

    # Run with a fixed seed so the rolls repeat
    crawl run examples/night-watch.crawl --seed 7

    # Interactive session; blocks are read until their closing `end`
    crawl repl
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .ast import print_ast
from .config import ConfigError, CrawlConfig, load_config
from .errors import DiagnosticCollector, ParserError, ScannerError
from .parser import Parser
from .runtime import Interpreter, StatementRecord, run_source
from .scanner import Scanner

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'


def setup_logging(args, config: CrawlConfig) -> None:
    """Configure logging from --verbose/--quiet or the config file."""
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = getattr(logging, config.log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _read_source(path_str: str) -> Optional[str]:
    source_path = Path(path_str)
    if not source_path.is_file():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    try:
        return source_path.read_text(encoding='utf-8')
    except UnicodeDecodeError as e:
        print(f"Error: {source_path} is not UTF-8 text: {e}", file=sys.stderr)
        return None


def _make_interpreter(args, config: CrawlConfig) -> Interpreter:
    if args.seed is not None:
        config.seed = args.seed
    return Interpreter.from_config(config)


def _print_results(results) -> None:
    for result in results:
        if isinstance(result, StatementRecord):
            print(result)
        else:
            print(result.diagnostic.format(), file=sys.stderr)


def cmd_run(args, config: CrawlConfig) -> int:
    """Run a Crawl file."""
    source = _read_source(args.file)
    if source is None:
        return 1

    interpreter = _make_interpreter(args, config)
    result = run_source(source, interpreter, strict=args.strict or config.strict,
                        filename=args.file)

    if args.json:
        print(json.dumps(result.to_json(), indent=2))
        return 0 if result.success else 1

    for error in result.scanner_errors + result.parser_errors:
        print(error.diagnostic.format(), file=sys.stderr)
    for diagnostic in result.diagnostics.diagnostics:
        if diagnostic.code.startswith("W"):
            print(diagnostic.format(), file=sys.stderr)
    _print_results(result.results)

    return 0 if result.success else 1


def cmd_check(args, config: CrawlConfig) -> int:
    """Check a Crawl file for syntax errors."""
    source = _read_source(args.file)
    if source is None:
        return 1

    diagnostics = DiagnosticCollector()
    scanner = Scanner(source, args.file)
    tokens = [t for t in scanner.scan() if not isinstance(t, ScannerError)]
    for diagnostic in scanner.diagnostics.diagnostics:
        diagnostics.add(diagnostic)

    statements = []
    if not diagnostics.has_errors:
        parser = Parser(tokens, args.file, source)
        statements = [s for s in parser.parse() if not isinstance(s, ParserError)]
        for diagnostic in parser.diagnostics.diagnostics:
            diagnostics.add(diagnostic)

    if args.json:
        print(json.dumps(diagnostics.to_json(), indent=2))
        return 1 if diagnostics.has_errors else 0

    if diagnostics.diagnostics:
        print(diagnostics.format_all(), file=sys.stderr)
    if diagnostics.has_errors:
        return 1

    if args.ast:
        for statement in statements:
            print_ast(statement)

    print(f"OK: {Path(args.file).name} - {len(statements)} statement(s), no errors")
    return 0


def _opens_block(line: str) -> bool:
    words = line.split()
    if not words:
        return False
    if words[0] == "procedure":
        return True
    # roll 2d6 (a matching roll), but not roll on table "..."
    return words[0] == "roll" and len(words) > 1 and words[1] != "on"


def cmd_repl(args, config: CrawlConfig) -> int:
    """Read and run statements one at a time; state carries over between them."""
    interpreter = _make_interpreter(args, config)
    print(f"crawl {__version__} - end input with Ctrl-D")

    buffer: List[str] = []
    depth = 0
    while True:
        try:
            line = input("...   " if depth else "crawl> ")
        except EOFError:
            print()
            return 0
        except KeyboardInterrupt:
            print()
            buffer, depth = [], 0
            continue

        if _opens_block(line):
            depth += 1
        elif line.strip() == "end" and depth:
            depth -= 1
        buffer.append(line)
        if depth:
            continue

        source = "\n".join(buffer) + "\n"
        buffer = []
        result = run_source(source, interpreter, strict=True)
        for error in result.scanner_errors + result.parser_errors:
            print(error.diagnostic.format(), file=sys.stderr)
        _print_results(result.results)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-c', '--config', metavar='FILE',
                        help='YAML config file (default: $CRAWL_CONFIG or ~/.config/crawl/config.yaml)')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Log debug output')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log errors')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='crawl',
        description='Run Crawl game master procedures',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # run command
    run_parser = subparsers.add_parser('run', help='Run a Crawl file')
    run_parser.add_argument('file', help='Crawl source file')
    run_parser.add_argument('--seed', type=int, help='Seed the dice for a repeatable run')
    run_parser.add_argument('--strict', action='store_true',
                            help="Don't run anything if there are parse errors")
    run_parser.add_argument('--json', action='store_true', help='Print results as JSON')
    _add_common_arguments(run_parser)

    # check command
    check_parser = subparsers.add_parser('check', help='Check a Crawl file for errors')
    check_parser.add_argument('file', help='Crawl source file')
    check_parser.add_argument('--ast', action='store_true', help='Print the parsed statements')
    check_parser.add_argument('--json', action='store_true', help='Print diagnostics as JSON')
    _add_common_arguments(check_parser)

    # repl command
    repl_parser = subparsers.add_parser('repl', help='Interactive session')
    repl_parser.add_argument('--seed', type=int, help='Seed the dice')
    _add_common_arguments(repl_parser)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(args, config)
    logger.debug("config: %s", config)

    if args.action == 'run':
        return cmd_run(args, config)
    elif args.action == 'check':
        return cmd_check(args, config)
    elif args.action == 'repl':
        return cmd_repl(args, config)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
