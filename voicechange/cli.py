"""
Command-line interface.

Usage:
    voicechange gen [--strategy spectral|network] <source.wav> <target.wav> <output.json>
    voicechange translate <model.json> <input.wav> <output.wav>

Exits 1 and prints "<stage> failed: <reason>" to stderr on any error.
"""

import argparse
import dataclasses
import logging
import sys

from .audio import load_recording, save_recording
from .errors import VoiceChangeError
from .inference import translate
from .serialization import load_model, save_model
from .strategy import STRATEGIES, fit_recordings

logger = logging.getLogger(__name__)


class StageFailed(Exception):
    """A pipeline stage failed; the message names the stage."""


def run_stage(stage: str, fn, *args, **kwargs):
    """Call fn, turning pipeline and config errors into StageFailed."""
    try:
        return fn(*args, **kwargs)
    except (VoiceChangeError, ValueError) as e:
        raise StageFailed(f"{stage} failed: {e}") from e


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_strategy(args: argparse.Namespace):
    """Strategy named by --strategy, with its config overridden by the given flags."""
    cls = STRATEGIES[args.strategy]
    fields = {f.name for f in dataclasses.fields(cls.config_class)}
    overrides = {
        key: getattr(args, key)
        for key in ("window_size", "min_amplitude", "max_iterations", "seed")
        if key in fields and getattr(args, key) is not None
    }
    return cls(cls.config_class(**overrides))


def gen_command(args: argparse.Namespace):
    strategy = run_stage("configure", build_strategy, args)
    source = run_stage("read source", load_recording, args.source)
    target = run_stage("read target", load_recording, args.target)

    model, pairs = run_stage("fit", fit_recordings, source, target, strategy)

    logger.info("Saving result...")
    run_stage("save model", save_model, args.output, model)

    run_stage("measure error", strategy.report, pairs, model)


def translate_command(args: argparse.Namespace):
    model = run_stage("read model", load_model, args.model)
    source = run_stage("read source", load_recording, args.input)
    result = run_stage("translate", translate, model, source)
    run_stage("write result", save_recording, args.output, result)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="voicechange", description="Learn and apply a voice conversion transform")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings")
    sub = parser.add_subparsers(dest="command", parser_class=_Parser)

    gen = sub.add_parser("gen", help="Fit a model from a source and a target recording")
    gen.add_argument("source", help="Source speaker WAV")
    gen.add_argument("target", help="Target speaker WAV (same length as source)")
    gen.add_argument("output", help="Output model JSON")
    gen.add_argument("--strategy", choices=sorted(STRATEGIES), default="spectral")
    gen.add_argument("--window-size", type=int, default=None,
                     help="Samples per window (default 512 spectral, 1024 network)")
    gen.add_argument("--min-amplitude", type=float, default=None, help="Energy gate")
    gen.add_argument("--max-iterations", type=int, default=None, help="Network optimizer iteration cap")
    gen.add_argument("--seed", type=int, default=None, help="Network initialization seed")
    gen.set_defaults(func=gen_command)

    tr = sub.add_parser("translate", help="Convert a recording with a fitted model")
    tr.add_argument("model", help="Model JSON from `gen`")
    tr.add_argument("input", help="Input WAV")
    tr.add_argument("output", help="Output WAV")
    tr.set_defaults(func=translate_command)

    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.error("a command is required (gen or translate)")

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(message)s")

    try:
        args.func(args)
    except StageFailed as e:
        print(e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
