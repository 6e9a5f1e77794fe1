"""CLI entry point: run `jsbundler build.yml` or `python -m jsbundler build.yml`."""

import logging
import sys
from pathlib import Path
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    from .compiler.config import load_config
    from .compiler.driver import BundleDriver
    from .shared.errors import ConfigError

    parser = argparse.ArgumentParser(
        prog="jsbundler",
        description="Bundle ES modules into a single userscript.",
    )
    parser.add_argument("config", type=Path, help="Build configuration (.yml, .yaml or .json)")
    parser.add_argument("--dev", action="store_true", help="Apply the `development` overrides")
    parser.add_argument("--output", help="Override the output path")
    minify = parser.add_mutually_exclusive_group()
    minify.add_argument("--minify", dest="minify", action="store_true", default=None,
                        help="Minify the artifact")
    minify.add_argument("--no-minify", dest="minify", action="store_false",
                        help="Do not minify the artifact")
    parser.add_argument("--sourcemap", choices=("off", "external", "inline"),
                        help="Source map mode")
    parser.add_argument("--report", action="store_true", default=None,
                        help="Write a .stats.json report next to the artifact")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only warnings and errors")
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(args.config, development=args.dev)
        config = config.with_overrides(
            output=args.output,
            minify=args.minify,
            sourcemap=args.sourcemap,
            generate_report=args.report,
        )
    except ConfigError as e:
        sys.stderr.write(f"jsbundler: error[{e.code}]: {e.message}\n")
        return 2

    result = BundleDriver().build(config)

    if result.reporter is not None:
        result.reporter.print_errors()
    if not result.success:
        if result.reporter is None or not result.reporter.has_errors():
            sys.stderr.write("jsbundler: build failed\n")
            return 1
        if any(error.code == ConfigError.code for error in result.reporter.errors):
            return 2
        return 1

    stats = result.stats
    sys.stdout.write(
        f"{result.output_path}: {stats.size} bytes ({stats.gzip_size} gzipped), "
        f"{stats.modules} module(s)\n"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
