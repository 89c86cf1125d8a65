"""Operator entry point for validating processor settings."""

import argparse
import sys

from contribution_gateway.config import ProcessorConfig, check_config, settings
from contribution_gateway.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def run_check_config(config: ProcessorConfig | None = None) -> int:
    """Log every problem with the processor config; non-zero exit when unusable."""
    config = config or ProcessorConfig.from_settings()
    problems = check_config(config)
    for problem in problems:
        logger.error("processor_config_invalid", processor=config.name, problem=problem)
    if problems:
        return 1

    logger.info("processor_config_ok", processor=config.name, is_live=config.is_live)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    parser = argparse.ArgumentParser(prog="contribution-gateway")
    parser.add_argument("command", choices=["check-config"])
    parser.parse_args(argv)

    configure_logging(
        log_level="DEBUG" if settings.debug else settings.log_level,
        format_as_json=settings.log_json,
    )
    return run_check_config()


if __name__ == "__main__":
    sys.exit(main())
