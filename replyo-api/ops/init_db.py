#!/usr/bin/env python3
"""Create the Replyo tables in DATABASE_URL."""

from replyo.database import Base, engine
from replyo.logging_config import get_logger, setup_logging

import replyo.models  # noqa: F401  registers every table on Base.metadata


def main() -> None:
    setup_logging()
    Base.metadata.create_all(bind=engine)
    get_logger("init_db").info("Schema created", extra={"context": {"tables": sorted(Base.metadata.tables)}})


if __name__ == "__main__":
    main()
