#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to create MongoDB lookup indexes for the blood request collection.

The indexes only speed up the pairing lookups; no uniqueness constraint is
created, so concurrent creates are not serialized by the database.
"""

import sys
import logging

from ..services.mongodb import get_mongodb_service, close_mongodb_connection

logger = logging.getLogger(__name__)


def main():
    """Create MongoDB indexes."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        logger.info("Starting MongoDB index creation...")

        mongodb_service = get_mongodb_service()

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            sys.exit(1)

        logger.info(f"Connected to MongoDB {health['version']} - Database: {health['database']}")

        mongodb_service.create_indexes()

        logger.info("MongoDB indexes created successfully!")

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")
        sys.exit(1)
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    main()
