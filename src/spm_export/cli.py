"""
CLI entrypoint for batch export (packaged).

Usage:
spm-export -o out/ -f png -fl "pc;melc;poly:2,2" -m scans/ extra.gwy
"""

import argparse
import logging
import sys

from . import __version__
from .batch import run_batch
from .config import DEFAULT_FILTERS, DEFAULT_GRADIENT, FILTER_DELIMITER, build_config, load_config
from .errors import BatchError, ConfigError
from .session import Session

log = logging.getLogger("spm_export")

PROG = "spm-export"

VALUE_OPTIONS = {"-o", "--output", "-fl", "--filters", "-f", "--format", "-g", "--gradient", "-c", "--colormap", "--config"}
FLAG_OPTIONS = {"-h", "--help", "-v", "--version", "-m", "--metadata", "--defaultfilters", "-s", "--silentmode"}

FILTER_HELP = """\
filters (applied in the given order, separated by '{d}'):
  pc        plane correct
  melc      median line correction
  sr        remove scars
  poly:x,y  polynomial levelling with degrees x,y (poly:x means x,x)
  mean:x    mean filter of x pixel
  any:name  run process module <name>

example: -fl "pc{d}melc{d}poly:2,2{d}melc"
default filters: {default}
""".format(d=FILTER_DELIMITER, default=DEFAULT_FILTERS)


def build_parser():
    p = argparse.ArgumentParser(
        prog=PROG,
        description="Export all channels of SPM data files to png or jpg images, "
        "optionally dumping their metadata to text files.",
        epilog=FILTER_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    p.add_argument("-v", "--version", action="version", version="%s %s" % (PROG, __version__))
    p.add_argument("-o", "--output", nargs="?", const="", help="Directory for exported files (default: current directory).")
    p.add_argument("-m", "--metadata", action="store_true", default=None, help="Dump channel metadata to a .txt file next to each image.")
    p.add_argument("-fl", "--filters", nargs="?", const="", help="Filter list applied to each channel (see below).")
    p.add_argument("--defaultfilters", action="store_true", help="Use the default filter list (%s)." % DEFAULT_FILTERS)
    p.add_argument("-f", "--format", nargs="?", const="", help="Image format: jpg or png (default jpg).")
    p.add_argument("-g", "--gradient", nargs="?", const="", help="Colour gradient name (default %s)." % DEFAULT_GRADIENT)
    p.add_argument("-c", "--colormap", nargs="?", const="", help="Colour mapping: auto, full or adaptive.")
    p.add_argument("-s", "--silentmode", action="store_true", default=None, help="Suppress informational and warning messages.")
    p.add_argument("--config", help="YAML/JSON file with default option values.")
    p.add_argument("inputs", nargs="*", help="Data files or directories; the first token that is not an option starts this list.")
    return p


def split_inputs(argv):
    """Split argv at the first token that is not a known option (or its value)."""
    i = 0
    while i < len(argv):
        token = argv[i]
        name = token.split("=", 1)[0] if token.startswith("--") else token
        if name in VALUE_OPTIONS:
            if "=" not in token and i + 1 < len(argv) and not argv[i + 1].startswith("-"):
                i += 1
        elif name not in FLAG_OPTIONS:
            break
        i += 1
    return argv[:i], argv[i:]


def parse_args(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    options, inputs = split_inputs(argv)
    args = build_parser().parse_args(options)
    args.inputs = inputs
    return args


def configure_logging(quiet: bool) -> None:
    logging.basicConfig(
        level=logging.ERROR if quiet else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _pick(cli_value, cfg, key):
    return cli_value if cli_value is not None else cfg.get(key)


def main(argv=None):
    parser = build_parser()
    args = parse_args(argv)

    cfg = {}
    if args.config:
        try:
            cfg = load_config(args.config)
        except ConfigError as exc:
            configure_logging(False)
            log.error("%s", exc)
            return 1

    quiet = bool(_pick(args.silentmode, cfg, "quiet"))
    configure_logging(quiet)

    if not args.inputs:
        log.warning("No file given.")
        parser.print_help()
        return 0

    filters = _pick(args.filters, cfg, "filters")
    if args.defaultfilters:
        filters = DEFAULT_FILTERS
    elif filters == "":
        log.warning("No filter list defined, will use default list.")
        filters = DEFAULT_FILTERS
    if args.output == "":
        log.warning("No output path defined.")
    if args.gradient == "":
        log.warning("No gradient defined.")
    if args.format == "":
        log.warning("File format missing.")

    config = build_config(
        inputs=args.inputs,
        output_dir=_pick(args.output or None, cfg, "output_dir"),
        image_format=_pick(args.format or None, cfg, "format"),
        filters=filters,
        gradient=_pick(args.gradient or None, cfg, "gradient"),
        colormap=_pick(args.colormap or None, cfg, "colormap"),
        metadata=bool(_pick(args.metadata, cfg, "metadata")),
        quiet=quiet,
        logger=log,
    )

    if not quiet:
        print("==\nThis is %s v%s\n==" % (PROG, __version__))

    try:
        run_batch(config, Session(), log)
    except BatchError as exc:
        log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
