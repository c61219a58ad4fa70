#!/usr/bin/env python3
"""
CLI entrypoint for cxxbind.

Usage:
  python -m cxxbind.app.cli <declaration.json> [flags]
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from cxxbind.app.config import DEFAULT_CONFIG, GeneratorConfig
from cxxbind.app.loader import load_declaration_file
from cxxbind.core.errors import BindingError, MaterializeError
from cxxbind.gen.builder import simple_builder
from cxxbind.utils.logging_config import configure_logging, verbosity_level

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cxxbind",
        description="Generate a C wrapper layer and ctypes bindings for a C++ class library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Generate into ./working
    python -m cxxbind.app.cli mysample.json

    # Stage in a scratch tree and install only changed files
    python -m cxxbind.app.cli mysample.json --working-dir build/stage --install-dir build/mysample
        """)
    parser.add_argument('declaration', help='JSON package declaration')
    parser.add_argument('--working-dir', dest='working_directory',
                        help='Staging tree (default: %s)' % DEFAULT_CONFIG.working_directory)
    parser.add_argument('--install-dir', dest='install_directory',
                        help='Install tree receiving changed files from the staging tree')
    parser.add_argument('--summary-module', help='Module that re-exports the whole package')
    parser.add_argument('--library-name', help='Shared library holding the wrapper symbols')
    parser.add_argument('--no-manifest', action='store_true', help='Do not write MANIFEST.xml')
    parser.add_argument('--verbose', '-v', action='count', default=0,
                        help='More logging (repeat for debug output)')
    return parser


def config_from_args(args: argparse.Namespace, base: GeneratorConfig = DEFAULT_CONFIG) -> GeneratorConfig:
    config = base.with_overrides(
        working_directory=args.working_directory,
        install_directory=args.install_directory,
        summary_module=args.summary_module,
        library_name=args.library_name,
    )
    if args.no_manifest:
        config = config.with_overrides(emit_manifest=False)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbosity_level(args.verbose))
    config = config_from_args(args)

    try:
        decl = load_declaration_file(args.declaration)
        result = simple_builder(decl, config)
    except OSError as e:
        logger.error("cannot read %s: %s", args.declaration, e)
        return 2
    except MaterializeError as e:
        logger.error("%s", e)
        return 3
    except BindingError as e:
        logger.error("%s", e)
        return 1

    print(f"{len(result.report.written)} written, {len(result.report.unchanged)} unchanged"
          f" in {config.working_directory}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
