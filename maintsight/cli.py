"""
Command line interface.

Usage:
    maintsight predict /path/to/repo --branch main --format markdown -o report.md
    maintsight train dataset.csv -o model.json
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import (
    DEFAULT_BRANCH,
    WINDOW_SIZE_DAYS,
    MAX_COMMITS,
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    TARGET_COL,
)
from .analysis import analyze_repository
from .exceptions import MaintSightError
from .report import FORMATS, filter_by_threshold, format_results, print_summary
from .scorer import RiskScorer

log = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='maintsight',
        description='Maintenance risk predictor for git repositories',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(dest='command')

    predict = subparsers.add_parser('predict', help='Run maintenance risk predictions on a repository')
    predict.add_argument('path', nargs='?', default='.',
                         help='Path to git repository (default: current directory)')
    predict.add_argument('-b', '--branch', default=DEFAULT_BRANCH,
                         help='Git branch to analyze')
    predict.add_argument('-n', '--max-commits', type=int, default=MAX_COMMITS,
                         help='Maximum number of commits to analyze')
    predict.add_argument('-w', '--window-size-days', type=int, default=WINDOW_SIZE_DAYS,
                         help='Time window in days for commit analysis')
    predict.add_argument('-o', '--output',
                         help='Output file path (default: stdout)')
    predict.add_argument('-f', '--format', choices=FORMATS, default='json',
                         help='Output format')
    predict.add_argument('-t', '--threshold', type=float, default=0.0,
                         help='Only show files at or above this degradation score')
    predict.add_argument('--include-deleted', action='store_true',
                         help='Also score files that no longer exist in the working tree')
    predict.add_argument('--model', help='Path to a model JSON (default: bundled model)')
    predict.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    train = subparsers.add_parser('train', help='Train and export a model from a labelled CSV')
    train.add_argument('dataset', help='CSV with base counters and a label column')
    train.add_argument('-o', '--output', default='xgboost-model.json',
                       help='Where to write the model JSON')
    train.add_argument('--target', default=TARGET_COL, help='Label column')
    train.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    return parser


def run_predict(args) -> int:
    repo_path = Path(args.path).resolve()
    scorer = RiskScorer(model_path=args.model)

    _, predictions = analyze_repository(
        repo_path,
        branch=args.branch,
        window_size_days=args.window_size_days,
        max_commits=args.max_commits,
        only_existing_files=not args.include_deleted,
        scorer=scorer,
    )
    if not predictions:
        log.error('No source files found in git history')
        return 1

    results = filter_by_threshold(predictions, args.threshold)
    log.info('Predictions complete: %d files analyzed', len(results))

    output = format_results(results, args.format, repo_path)
    if args.output:
        Path(args.output).write_text(output, encoding='utf-8')
        log.info('Results saved to: %s', args.output)
    else:
        sys.stdout.write(output if output.endswith('\n') else output + '\n')

    if args.format != 'json':
        print_summary(results)
    return 0


def run_train(args) -> int:
    from .training import load_dataset, train_model, export_model

    df = load_dataset(args.dataset)
    print(f"\nDataset: {args.dataset} ({len(df)} samples)")
    trained = train_model(df, target=args.target)
    export_model(trained['model'], args.output)
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.verbose)

    try:
        if args.command == 'predict':
            return run_predict(args)
        return run_train(args)
    except MaintSightError as e:
        log.error('Error: %s', e)
        if args.verbose:
            log.exception('Details')
        return 1


if __name__ == "__main__":
    sys.exit(main())
