#!/usr/bin/env python3
# lambda_sync/cli.py
"""
CLI interface for lambda-sync
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .aws import AWSClientOptions, DEFAULT_REGION
from .config import load_config
from .deployer import Deployer

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Deploy a Lambda function and its SQS triggers from a local configuration')
    parser.add_argument('--config', type=Path,
                        help='Configuration file (default: lambda.config.json, then pyproject.toml)')
    parser.add_argument('--region', help=f'AWS region (default: {DEFAULT_REGION})')
    parser.add_argument('--profile', help='AWS credentials profile')
    parser.add_argument('--build-only', action='store_true', help='Build package only')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main deployment function"""
    env_path = Path('.env')
    if env_path.exists():
        load_dotenv(env_path, override=True)

    parsed = parse_arguments(args)
    setup_logging(parsed.verbose)

    try:
        logger.info("🚀 lambda-sync")

        config = load_config(parsed.config)
        options = AWSClientOptions().merged(region=parsed.region, profile=parsed.profile)
        deployer = Deployer(config, options)

        if parsed.build_only:
            package_path = deployer.build()
            logger.info(f"✅ Package built: {package_path}")
        else:
            deployer.deploy()
            logger.info("✅ Deployment completed!")

        return 0

    except Exception as e:
        logger.error(f"❌ Deployment failed: {e}")
        logger.debug("Traceback:", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
