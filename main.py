#!/usr/bin/env python3
"""
CLI application for reporting metrics to InfluxDB on a fixed interval.
"""
import argparse
import json
import logging
import os
import time
from typing import Any, Dict

from influx_reporter import config as reporter_config
from influx_reporter.client import DryRunMetricClient, HttpMetricClient, MetricClient
from influx_reporter.metrics import MetricRegistry
from influx_reporter.reporter import create_reporter

# Setup logging
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """
    Setup logging with the specified log level.

    Args:
        log_level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def load_config_from_file(config_file: str) -> Dict[str, Any]:
    """
    Load configuration from a JSON file.

    Args:
        config_file (str): Path to the JSON config file

    Returns:
        dict: Configuration dictionary with argument names as keys
    """
    if not os.path.exists(config_file):
        logger.error("Config file not found: %s", config_file)
        return {}

    try:
        with open(config_file, 'r') as f:
            config = json.load(f)
            logger.debug("Loaded configuration from %s: %s", config_file, config)
            return config
    except (json.JSONDecodeError, ValueError) as e:
        logger.error("Error parsing config file %s: %s", config_file, e)
        return {}


def merge_config_with_args(config: Dict[str, Any], args: argparse.Namespace,
                           parser: argparse.ArgumentParser) -> argparse.Namespace:
    """
    Merge configuration from a file with command line arguments.
    Command line arguments take precedence over config file values.

    Args:
        config (dict): Configuration dictionary from file
        args (argparse.Namespace): Command line arguments
        parser (argparse.ArgumentParser): Parser used for args, to tell defaults from given values

    Returns:
        argparse.Namespace: Updated arguments namespace
    """
    args_dict = vars(args)

    for key, value in config.items():
        # Convert dashes to underscores in key names
        arg_key = key.replace('-', '_')

        # Only set if the value was left at its default on the command line
        if arg_key not in args_dict or args_dict[arg_key] == parser.get_default(arg_key):
            args_dict[arg_key] = value

    return argparse.Namespace(**args_dict)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Report metrics to InfluxDB on a fixed interval.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--config-file', type=str,
                        help='Path to JSON configuration file')

    # General options
    parser.add_argument('--log-level', type=str, default=reporter_config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level')
    parser.add_argument('--interval', type=int, default=reporter_config.REPORTING_INTERVAL,
                        help='Interval between reporting cycles in seconds')
    parser.add_argument('--count', type=int, default=0,
                        help='Number of reporting cycles (0 to run until interrupted)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Do not send metrics to InfluxDB, just log them')
    parser.add_argument('--system-metrics', action='store_true',
                        help='Report cpu, memory and disk usage of this host')

    # InfluxDB configuration
    parser.add_argument('--server-url', type=str, default=reporter_config.SERVER_URL,
                        help='URL of the InfluxDB server')
    parser.add_argument('--database', type=str, default=reporter_config.DATABASE,
                        help='Database to write to')
    parser.add_argument('--username', type=str, default=reporter_config.USERNAME,
                        help='User for basic authentication')
    parser.add_argument('--password', type=str, default=reporter_config.PASSWORD,
                        help='Password for basic authentication')
    parser.add_argument('--batch-size', type=int, default=reporter_config.BATCH_SIZE,
                        help='Maximum number of records per write request')
    parser.add_argument('--buffer-size', type=int, default=reporter_config.BUFFER_SIZE,
                        help='Maximum number of unsent records kept for retry (0 disables)')
    parser.add_argument('--max-retries', type=int, default=reporter_config.MAX_RETRIES,
                        help='Maximum number of attempts per write request')
    parser.add_argument('--retry-delay', type=int, default=reporter_config.RETRY_DELAY,
                        help='Delay between attempts in seconds')
    parser.add_argument('--request-timeout', type=int, default=reporter_config.REQUEST_TIMEOUT,
                        help='Request timeout in seconds')
    return parser


def build_client(args: argparse.Namespace) -> MetricClient:
    """
    Create the metric client described by the command line arguments.

    Args:
        args (argparse.Namespace): Command line arguments

    Returns:
        MetricClient: A dry-run client or an HTTP client
    """
    if args.dry_run:
        return DryRunMetricClient()

    return HttpMetricClient(
        server_url=args.server_url,
        database=args.database,
        username=args.username,
        password=args.password,
        max_retries=args.max_retries,
        retry_delay=args.retry_delay,
        request_timeout=args.request_timeout
    )


def run_rounds(reporter, count: int, interval: float) -> None:
    """Run a fixed number of cycles in the calling thread."""
    for round_count in range(1, count + 1):
        logger.info("Reporting round %s/%s", round_count, count)
        results = reporter.report()
        logger.debug("Round %s sent %s batches", round_count, len(results))
        if round_count < count:
            time.sleep(interval)


def main(argv=None, registry: MetricRegistry = None):
    """Main function to parse arguments and run the reporter."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config_file:
        config = load_config_from_file(args.config_file)
        if config:
            args = merge_config_with_args(config, args, parser)

    setup_logging(args.log_level)

    registry = registry if registry is not None else MetricRegistry()
    if args.system_metrics:
        # Import here so psutil is only needed when host metrics are requested
        from influx_reporter.system import register_system_metrics
        register_system_metrics(registry)

    client = build_client(args)
    if isinstance(client, HttpMetricClient) and not client.health_check():
        logger.warning("InfluxDB server is not accessible. Metrics will be buffered.")

    reporter = create_reporter(
        registry,
        client,
        interval=args.interval,
        buffer_size=args.buffer_size,
        batch_size=args.batch_size
    )

    task = None
    try:
        if args.count > 0:
            run_rounds(reporter, args.count, args.interval)
        else:
            task = reporter.start()
            while task.running:
                time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Reporting interrupted by user.")
    finally:
        if task is not None:
            task.stop()
        reporter.close()

    # Check if there are any buffered records
    if reporter.buffer is not None and len(reporter.buffer) > 0:
        logger.info("There are %s records in the buffer.", len(reporter.buffer))

    logger.info("Reporting completed.")
    return reporter


if __name__ == "__main__":
    main()
