"""Command-line front end: train, sample and score character bigram models."""

from __future__ import annotations

import argparse
import logging
import pathlib
from typing import List, Optional

from bigram_generate import generate
from bigram_model import DEFAULT_ALPHA, BigramModel, score_text, train, train_with_report
from errors import BigramError
from snapshot import export_snapshot, import_snapshot
from train_bigram import TrainConfig, fit_torch_bigram, get_device, set_seed

logger = logging.getLogger(__name__)

DEFAULT_CORPUS = """Transformers are attention-based neural networks that model relationships between tokens
without relying on recurrence or convolutions. Every token attends to every other token,
unlocking rich contextual representations that power generative models like ChatGPT.
---
Large language models emerge by stacking transformer blocks, scaling dataset sizes,
and training with next-token prediction. This simple objective leads models to learn grammar,
facts, reasoning patterns, and even coding abilities."""

DEFAULT_LENGTH = 220
DEFAULT_TEMPERATURE = 0.9
DEFAULT_SNAPSHOT = "char-bigram-llm.json"


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def read_text(path: Optional[pathlib.Path]) -> str:
    if path is None:
        return DEFAULT_CORPUS
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Cannot read {path}: {exc}") from exc


def load_model(args: argparse.Namespace) -> BigramModel:
    if args.snapshot is not None:
        try:
            return import_snapshot(args.snapshot.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SystemExit(f"Cannot read {args.snapshot}: {exc}") from exc
    return train(read_text(args.corpus), alpha=args.alpha)


def cmd_train(args: argparse.Namespace) -> None:
    text = read_text(args.corpus)
    if args.estimator == "torch":
        set_seed(args.seed)
        cfg = TrainConfig(steps=args.steps, alpha=args.alpha, seed=args.seed)
        model = fit_torch_bigram(text, cfg, device=get_device(args.device))
        perplexity = score_text(model).perplexity
    else:
        result = train_with_report(text, alpha=args.alpha)
        model, perplexity = result.model, result.perplexity

    print("[Bigram Character Model]")
    print(f"Corpus length (chars): {len(text):,}")
    print(f"Vocab size (chars): {model.vocab_size}")
    print(f"Transitions learned: {model.total_transitions:,}")
    print(f"Perplexity: {perplexity:.4f}")

    try:
        args.out.write_text(export_snapshot(model), encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Cannot write {args.out}: {exc}") from exc
    logger.info("Saved snapshot to %s", args.out)


def cmd_generate(args: argparse.Namespace) -> None:
    model = load_model(args)
    print(generate(model, args.length, args.temperature, seed=args.seed_char, rng=args.rng_seed))


def cmd_perplexity(args: argparse.Namespace) -> None:
    model = load_model(args)
    report = score_text(model, read_text(args.text))
    print(f"Perplexity: {report.perplexity:.4f}")
    print(f"Scored transitions: {report.scored:,}")
    print(f"Skipped (out of vocabulary): {report.skipped:,}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Character bigram language model lab")
    p.add_argument("--alpha", type=float, default=DEFAULT_ALPHA, help="additive smoothing")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("train", help="train on a corpus and write a snapshot")
    t.add_argument("corpus", type=pathlib.Path, nargs="?", default=None)
    t.add_argument("--estimator", choices=("counts", "torch"), default="counts")
    t.add_argument("--steps", type=int, default=300)
    t.add_argument("--seed", type=int, default=42)
    t.add_argument("--device", choices=("auto", "cpu", "cuda", "mps"), default="auto")
    t.add_argument("--out", type=pathlib.Path, default=pathlib.Path(DEFAULT_SNAPSHOT))
    t.set_defaults(func=cmd_train)

    g = sub.add_parser("generate", help="sample text")
    source = g.add_mutually_exclusive_group()
    source.add_argument("--snapshot", type=pathlib.Path)
    source.add_argument("--corpus", type=pathlib.Path)
    g.add_argument("--length", type=int, default=DEFAULT_LENGTH)
    g.add_argument("--temperature", type=float, default=DEFAULT_TEMPERATURE)
    g.add_argument("--seed-char", type=str, default=None)
    g.add_argument("--rng-seed", type=int, default=None)
    g.set_defaults(func=cmd_generate)

    s = sub.add_parser("perplexity", help="score a text file")
    s.add_argument("text", type=pathlib.Path)
    source = s.add_mutually_exclusive_group()
    source.add_argument("--snapshot", type=pathlib.Path)
    source.add_argument("--corpus", type=pathlib.Path)
    s.set_defaults(func=cmd_perplexity)
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        args.func(args)
    except BigramError as exc:
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()
