#!/usr/bin/env python3
"""
Create the VIDEOS table in Snowflake.

Safe to re-run: the statement is CREATE TABLE IF NOT EXISTS.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --dry-run

Requires:
    - .env file with Snowflake credentials (same variables as the API)
"""

import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

CREATE_VIDEOS_TABLE = """
    CREATE TABLE IF NOT EXISTS VIDEOS (
        VIDEO_ID VARCHAR(36) NOT NULL PRIMARY KEY,
        USER_ID VARCHAR(36) NOT NULL,
        TITLE VARCHAR(200) NOT NULL,
        DESCRIPTION VARCHAR(5000),
        THUMBNAIL_URL VARCHAR(2048),
        VIDEO_URL VARCHAR(2048),
        CREATED_AT TIMESTAMP_NTZ NOT NULL,
        UPDATED_AT TIMESTAMP_NTZ NOT NULL
    )
"""


def create_schema(dry_run: bool = False) -> bool:
    """Run the DDL against the configured database and schema."""
    from tubely.api.dependencies import snowflake_config
    from tubely.config.settings import get_settings
    from tubely.infrastructure.snowflake.client import (
        SnowflakeConnectionError,
        get_snowflake_connection,
    )

    settings = get_settings()

    if not settings.snowflake_account or not settings.snowflake_user:
        print("ERROR: Missing SNOWFLAKE_ACCOUNT or SNOWFLAKE_USER")
        return False

    if dry_run:
        print("\n=== DRY RUN - Nothing will be executed ===\n")
        print(f"Target: {settings.snowflake_database}.{settings.snowflake_schema}")
        print(CREATE_VIDEOS_TABLE)
        return True

    config = snowflake_config(settings)

    try:
        print(f"Connecting to Snowflake account: {config.account}")
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(CREATE_VIDEOS_TABLE)
                conn.commit()
            finally:
                cursor.close()
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        return False

    print(f"VIDEOS table ready in {config.database}.{config.schema}")
    return True


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create the Tubely tables in Snowflake')
    parser.add_argument('--dry-run', action='store_true', help='Print the DDL without running it')
    args = parser.parse_args()

    success = create_schema(dry_run=args.dry_run)
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
