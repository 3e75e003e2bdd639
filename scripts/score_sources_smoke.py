#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine.core import load_config_or_default  # noqa: E402
from engine.paths import resolve_config_path  # noqa: E402
from scores.resolver import build_score_resolver  # noqa: E402


def _split_args(argv: list[str]) -> tuple[str, str]:
    if "--" not in argv:
        return "", ""
    idx = argv.index("--")
    return " ".join(argv[:idx]).strip(), " ".join(argv[idx + 1 :]).strip()


def main() -> int:
    title, composer = _split_args(sys.argv[1:])
    if not title or not composer:
        print("Usage: scripts/score_sources_smoke.py <title> -- <composer>")
        return 1
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    config = load_config_or_default(resolve_config_path())
    # No store: always hit the live catalogs.
    resolver = build_score_resolver(config, store=None)
    report = asyncio.run(resolver.resolve_with_report(title, composer))
    print(f"title={title!r} composer={composer!r} found={report.found}")
    for idx, outcome in enumerate(report.outcomes, start=1):
        print(f"{idx}. {outcome.source} | {outcome.state.value} | {outcome.reason}")
    if report.score is not None:
        score = report.score
        print(
            f"match: {score.catalog_title} | {score.catalog_composer} | source={score.source} | "
            f"score={score.match_score} | notation={'yes' if score.has_notation else 'no'} | {score.download_url}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
