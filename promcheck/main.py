"""Main entry point for the Prometheus metrics check."""
from typing import List, Optional
import argparse
import logging
import sys

import requests

from promcheck.config import (
    DEFAULT_URL,
    CheckConfig,
    ConfigurationError,
    apply_env_overrides,
    build_config,
    load_config_file,
)
from promcheck.evaluator import CheckResult, CheckState, evaluate_config
from promcheck.fetcher import FetchError, fetch_samples


def setup_logging(log_level: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    # stdout carries the check output, logs go to stderr
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class CheckArgumentParser(argparse.ArgumentParser):
    """Argument parser reporting usage errors as UNKNOWN instead of exit 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(int(CheckState.UNKNOWN), f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = CheckArgumentParser(
        prog="promcheck",
        description="Check metrics from a Prometheus exporter against thresholds"
    )
    parser.add_argument("--config", "-c", help="Path to a YAML file with check options")
    parser.add_argument("--url", help=f"URL to the Prometheus metrics (default {DEFAULT_URL})")
    parser.add_argument("--metric", help="Metric to check")
    parser.add_argument("--min", type=float, help="Minimum value of metric")
    parser.add_argument("--max", type=float, help="Maximum value of metric")
    parser.add_argument("--value", type=float, help="Specific numeric value of metric")
    parser.add_argument(
        "--label",
        action="append",
        help="Limit check to metric with specific label (name:value), can be used multiple times"
    )
    parser.add_argument("--user", help="User for basic auth")
    parser.add_argument("--password", help="Password for basic auth")
    parser.add_argument("--cert", help="Cert to use for mTLS")
    parser.add_argument("--key", help="Key to use for mTLS")
    parser.add_argument("--cacert", help="CA cert to use for mTLS")
    parser.add_argument(
        "--insecureskipverify",
        dest="insecure_skip_verify",
        action="store_true",
        default=None,
        help="Skip TLS certificate verification, for self signed certs"
    )
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds (default 10)")
    parser.add_argument("--log-level", dest="log_level", help="Log level (default WARNING)")
    return parser


def load_config(args: argparse.Namespace) -> CheckConfig:
    """Resolve defaults, config file, environment and CLI flags into a config."""
    options = {}
    if args.config:
        options.update(load_config_file(args.config))
    options = apply_env_overrides(options)

    cli_options = {k: v for k, v in vars(args).items() if k != "config" and v is not None}
    options.update(cli_options)
    return build_config(options)


def run_check(config: CheckConfig, session: Optional[requests.Session] = None) -> CheckResult:
    """Scrape the endpoint and evaluate the configured metric."""
    logger = logging.getLogger(__name__)

    try:
        samples = fetch_samples(config, session)
    except FetchError as e:
        logger.error(f"Scrape of {config.url} failed: {e}")
        return CheckResult(CheckState.UNKNOWN, [f"Failed: {e}"])

    return evaluate_config(samples, config)


def main(argv: Optional[List[str]] = None, session: Optional[requests.Session] = None) -> int:
    """Main function. Returns the check state as exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        setup_logging(args.log_level or "WARNING")
        print(f"Error: {e}")
        return int(CheckState.UNKNOWN)

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)
    logger.debug(f"Checking metric {config.metric} at {config.url}")

    result = run_check(config, session)
    for message in result.messages:
        print(message)

    logger.info(f"Check finished with state {result.state.name}")
    return int(result.state)


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
