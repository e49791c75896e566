"""
Provision the DynamoDB tables used by the durable backend.

Usage:
    python -m escool.create_tables [--prefix escool_] [--endpoint-url URL]
"""

from __future__ import annotations

import argparse
import logging

from botocore.exceptions import BotoCoreError, ClientError

from escool.config import get_settings
from escool.dynamo_db import DynamoDbClient

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--prefix",
        default=settings.dynamodb_table_prefix,
        help="Table name prefix",
    )
    parser.add_argument(
        "--region",
        default=settings.aws_region,
        help="AWS region",
    )
    parser.add_argument(
        "--endpoint-url",
        default=settings.dynamodb_endpoint_url,
        help="Custom DynamoDB endpoint (e.g. DynamoDB Local)",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Do not wait for new tables to become ACTIVE",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    db = DynamoDbClient(
        region=args.region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        endpoint_url=args.endpoint_url,
        table_prefix=args.prefix,
    )
    try:
        created = db.provision_tables(wait=not args.no_wait)
    except (BotoCoreError, ClientError) as exc:
        logger.error("Error creating DynamoDB tables: %s", exc)
        return 1

    logger.info("Created %d table(s)", len(created))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
