# main.py
"""
Entry point / Orchestrator.

Two modes:
1) classify <commit>...      print component/feature tags per commit (read-only)
2) backport <start> <end>    walk the merge commits of start...end and, per PR:
     - score member commits against the pattern files
     - consult the decision cache (~/.backporter/commits)
     - backport, skip, ask the human, or descend into the PR's commits
   --dry-run prints every decision without cherry-picking or saving decisions.

Exit codes:
  0   run completed
  1   a backport or git command failed (the commit is named on stderr)
  2   configuration error (missing pattern file, unusable cache directory)
  130 the user quit during review or pressed Ctrl-C; backports made so far stay committed
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from backporter.classifier import Classifier, Outcome
from backporter.decisions import DecisionCache
from backporter.driver import BackportDriver, RunReport
from backporter.errors import BackportError, ConfigError, GitError, UserAbort
from backporter.executor import BackportExecutor
from backporter.git import GitHistory
from backporter.logging_utils import setup_logging
from backporter.patterns import load_patterns
from backporter.render import Renderer
from backporter.reviewer import KeyReader, Reviewer
from backporter.scoring import Scorer
from backporter.settings import BackporterSettings, Strategy
from backporter.tags import tag_paths

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_ABORTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="backporter", description="Selective backporting of PRs and commits.")
    parser.add_argument("--repo", type=Path, default=Path("."), help="Git working tree (default: current directory)")
    parser.add_argument("--home", type=Path, default=None, help="Configuration directory (default: ~/.backporter)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    classify = sub.add_parser("classify", help="Print component/feature tags for commits")
    classify.add_argument("commits", nargs="+")

    backport = sub.add_parser("backport", help="Backport the PRs merged in start...end")
    backport.add_argument("start")
    backport.add_argument("end")
    backport.add_argument("--dry-run", action="store_true", default=None)
    backport.add_argument("--strategy", choices=[s.value for s in Strategy], default=None)
    backport.add_argument("--mixed-threshold", type=int, default=None)
    backport.add_argument("--no-sign", dest="sign", action="store_false", default=None,
                          help="Do not GPG-sign backported commits")
    return parser


def build_driver(
    settings: BackporterSettings,
    repo_dir: Path,
    console: Optional[Console] = None,
    key_reader: Optional[KeyReader] = None,
    history: Optional[GitHistory] = None,
) -> BackportDriver:
    """
    Wire the engine from validated settings. Configuration errors surface here,
    before any commit is classified.
    """
    patterns = load_patterns(settings)
    cache = DecisionCache.open(settings)
    history = history or GitHistory(repo_dir)
    console = console or Console(highlight=False)

    scorer = Scorer(patterns)
    classifier = Classifier(history, scorer, cache, settings.strategy, settings.mixed_threshold)
    reviewer = Reviewer(history, scorer, cache, key_reader=key_reader, console=console)
    executor = BackportExecutor(history, sign=settings.sign, dry_run=settings.dry_run)
    return BackportDriver(
        history=history,
        classifier=classifier,
        reviewer=reviewer,
        executor=executor,
        cache=cache,
        renderer=Renderer(console),
        dry_run=settings.dry_run,
    )


def run_classify(repo_dir: Path, commits: List[str]) -> int:
    history = GitHistory(repo_dir)
    for commit in commits:
        print(tag_paths(history.commit_meta(commit).changed_paths))
    return EXIT_OK


def print_summary(report: RunReport, dry_run: bool) -> None:
    counts = {o: 0 for o in Outcome}
    for _, outcome in report.decisions:
        counts[outcome] += 1
    print(
        f"\n{'Dry run: ' if dry_run else ''}"
        + ", ".join(f"{o.value.lower()}: {n}" for o, n in counts.items())
        + f", backported: {len(report.applied)}"
    )
    if report.conflicted:
        print("Conflicts resolved by the merge tool in: " + ", ".join(c[:7] for c in report.conflicted))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    repo_dir = args.repo.expanduser().resolve()

    try:
        settings = BackporterSettings.from_env().with_overrides(
            home=args.home,
            log_level=args.log_level,
            dry_run=getattr(args, "dry_run", None),
            strategy=getattr(args, "strategy", None),
            mixed_threshold=getattr(args, "mixed_threshold", None),
            sign=getattr(args, "sign", None),
        )
    except ConfigError as e:
        print("\nERROR:", str(e), file=sys.stderr)
        return EXIT_CONFIG

    if args.command == "classify":
        setup_logging(level=settings.log_level)
        try:
            return run_classify(repo_dir, args.commits)
        except GitError as e:
            print("\nERROR:", str(e), file=sys.stderr)
            return EXIT_FAILURE

    try:
        # Dry run leaves the configuration directory untouched.
        setup_logging(level=settings.log_level, log_file=None if settings.dry_run else settings.log_file)
        driver = build_driver(settings, repo_dir)
    except (ConfigError, OSError) as e:
        print("\nERROR:", str(e), file=sys.stderr)
        return EXIT_CONFIG

    try:
        report = driver.run(args.start, args.end)
    except UserAbort as e:
        print(f"\n{e}. Run interrupted; backports applied so far remain committed.", file=sys.stderr)
        return EXIT_ABORTED
    except KeyboardInterrupt:
        print("\nInterrupted. Backports applied so far remain committed.", file=sys.stderr)
        return EXIT_ABORTED
    except (BackportError, GitError) as e:
        print("\nERROR:", str(e), file=sys.stderr)
        return EXIT_FAILURE

    print_summary(report, settings.dry_run)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
