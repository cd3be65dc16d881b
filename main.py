"""Entry point for the i18n-pipeline localization tool."""

import argparse

from i18n_pipeline.cli import run


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``run`` command."""
    parser = argparse.ArgumentParser(
        prog="i18n-pipeline",
        description="Localize application strings using an LLM",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    run_parser = commands.add_parser("run", help="Run the localization pipeline")
    run_parser.add_argument(
        "-c",
        "--config",
        default="i18n.yaml",
        help="Path to the YAML project configuration (default: i18n.yaml)",
    )
    run_parser.add_argument(
        "--source-locale",
        help="Locale to use as source locale. Defaults to locale.source in i18n.yaml",
    )
    run_parser.add_argument(
        "--target-locale",
        action="append",
        help="Locale to use as target locale. Repeat for several. Defaults to locale.targets",
    )
    run_parser.add_argument(
        "--bucket",
        action="append",
        help="Bucket type to process. Repeat for several",
    )
    run_parser.add_argument(
        "--file",
        action="append",
        help="Process only files whose path matches this glob pattern. "
        "Quote patterns to prevent shell expansion, e.g. --file '**/*.json'",
    )
    run_parser.add_argument(
        "--key",
        action="append",
        help="Process only translation keys matching this glob pattern",
    )
    run_parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the lockfile and process all keys, useful for full re-translation",
    )
    run_parser.add_argument(
        "--api-key",
        help="API key to use, overriding the one from i18n.yaml or LLM_API_KEY",
    )
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Pause before any work and wait for confirmation; enables debug logging",
    )
    # Numeric options stay strings here; flag validation reports bad values
    run_parser.add_argument(
        "--concurrency",
        help="Number of concurrent tasks to run (default: 10)",
    )
    run_parser.add_argument(
        "--watch",
        action="store_true",
        help="Watch source files for changes and automatically re-localize",
    )
    run_parser.add_argument(
        "--debounce",
        metavar="MILLISECONDS",
        help="Debounce delay in milliseconds for watch mode (default: 5000)",
    )
    run_parser.add_argument(
        "--sound",
        action="store_true",
        help="Play a sound when the run completes or fails",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the localization pipeline."""
    args = build_parser().parse_args(argv)
    run(vars(args))


if __name__ == "__main__":
    main()
