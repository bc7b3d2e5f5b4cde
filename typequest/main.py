# main.py
from __future__ import annotations
import argparse
import logging
import random
import sys
from typing import List, Optional

from typequest.app.calculation import star_rating
from typequest.app.errors import TypequestError
from typequest.services.keystats import KeyStats
from typequest.services.markov import MarkovTextGenerator
from typequest.services.typing_engine import TypingEngine
from typequest.services.weakkeys import WeaknessEstimator
from typequest.utils.file_handler import load_corpus, load_event_log, load_settings


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
        force=True,
    )

    # Log any uncaught exceptions rather than silently dying
    def excepthook(exctype, value, tb):
        logging.exception("Unhandled exception", exc_info=(exctype, value, tb))
        sys.exit(1)

    sys.excepthook = excepthook


def replay(path: str, key_stats: KeyStats, settings) -> Optional[object]:
    text, events = load_event_log(path)
    engine = TypingEngine(text, key_stats, settings.session)
    for ch, ts in events:
        result = engine.submit_keystroke(ch, ts)
        if result.completed:
            return result.record
    logging.info("%s: log ended at %d/%d without completing", path, engine.state.cursor, len(text))
    return None


def cmd_replay(args, settings) -> int:
    record = replay(args.file, KeyStats(), settings)
    if record is None:
        print("incomplete session: no performance record")
        return 1
    print(f"wpm:       {record.wpm:.1f}")
    print(f"accuracy:  {record.accuracy:.1f}%")
    print(f"duration:  {record.duration:.1f}s")
    print(f"max combo: {record.max_combo}")
    print(f"score:     {record.score}")
    print(f"stars:     {star_rating(record)}")
    return 0


def cmd_generate(args, settings) -> int:
    rng = random.Random(args.seed) if args.seed is not None else None
    gen = MarkovTextGenerator(rng=rng, settings=settings.generator)
    gen.train(load_corpus(args.corpus))
    for _ in range(args.count):
        if args.focus:
            print(gen.generate_focused(args.focus, args.min_length))
        else:
            print(gen.generate(args.min_length))
    return 0


def cmd_weakness(args, settings) -> int:
    stats = KeyStats()
    for path in args.files:
        replay(path, stats, settings)
    estimator = WeaknessEstimator(stats, settings.estimator)
    results = sorted(estimator.analyze_all_keys(), key=lambda r: r.accuracy_estimate)
    print(f"{'key':>5} {'n':>5} {'acc':>6} {'conf':>5} {'weak':>5} {'prio':>4}  trend")
    for r in results:
        print(
            f"{r.key!r:>5} {r.observations:>5} {r.accuracy_estimate:>6.3f} "
            f"{r.confidence:>5.2f} {'yes' if r.is_weak else 'no':>5} {r.priority:>4}  {r.trend}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="typequest", description="Typing tutor core tools")
    parser.add_argument("--settings", default=None, help="JSON settings file")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("replay", help="replay a recorded keystroke log")
    p.add_argument("file")
    p.set_defaults(func=cmd_replay)

    p = sub.add_parser("generate", help="generate practice sentences")
    p.add_argument("--corpus", default=None)
    p.add_argument("--min-length", type=int, default=None)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--count", type=int, default=1)
    p.add_argument("--focus", default="", help="keys to emphasise, e.g. 'qzx'")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("weakness", help="per-key weakness table from recorded logs")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_weakness)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)
    try:
        settings = load_settings(args.settings) if args.settings else load_settings()
        return args.func(args, settings)
    except (TypequestError, OSError, KeyError, ValueError) as e:
        logging.error("%s failed: %s", args.command, e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
