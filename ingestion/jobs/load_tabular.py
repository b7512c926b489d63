# ingestion/jobs/load_tabular.py
import argparse
import asyncio
import logging
from pathlib import Path

from app.domain.errors import ConfigError, StoreUnavailable
from ingestion.dsld_csv import TABLES, ingest_directory
from ingestion.jobs.common import job_settings, open_repos

log = logging.getLogger("aimed.ingest")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Load the NIH DSLD CSV dump into MongoDB")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory with the DSLD CSV files (default: DSLD_DATA_DIR)")
    parser.add_argument("--batch-size", type=int, default=None, help="Rows per insert (default: INGEST_BATCH_SIZE)")
    parser.add_argument("--tables", type=str, default="",
                        help="Comma list of tables to load: " + ",".join(t.name for t in TABLES))
    args = parser.parse_args()

    settings = job_settings()
    data_dir = args.data_dir or settings.dsld_data_dir
    try:
        if not data_dir:
            settings.require("dsld_data_dir")
        if not Path(data_dir).is_dir():
            raise ConfigError(f"DSLD_DATA_DIR is not a directory: {data_dir}")
    except ConfigError as e:
        log.error("%s", e)
        return 2

    tables = [t.strip() for t in args.tables.split(",") if t.strip()] or None
    try:
        catalog, _ = await open_repos(settings)
        stats = await ingest_directory(catalog, Path(data_dir), args.batch_size or settings.ingest_batch_size, tables)
    except StoreUnavailable:
        log.error("MongoDB unavailable at %s", settings.mongo_uri)
        return 1

    log.info("DSLD tabular load finished: %s", stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
