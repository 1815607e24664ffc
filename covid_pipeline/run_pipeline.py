import os
import argparse
import datetime
import logging
from typing import Dict, Optional

import boto3
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from covid_pipeline import gold, settings, silver
from covid_pipeline.bronze import ingest_deaths, ingest_vaccinations
from covid_pipeline.quality import init_report
from utils.logger import setup_logger

logger = logging.getLogger("ETL_Pipeline")

EXPORT_FORMATS = ('csv', 'parquet')

# Report name -> reader over the database
REPORTS = {
    'percent_population_vaccinated': silver.read_percent_vaccinated_view,
    'highest_infection_rate': gold.highest_infection_rate_from_db,
    'death_count_by_country': gold.highest_death_count_by_country_from_db,
    'death_count_by_continent': gold.highest_death_count_by_continent_from_db,
    'global_daily_totals': gold.global_daily_totals_from_db,
    'global_totals': gold.global_totals_from_db,
}


def export_frame(df: pd.DataFrame, output_file: str) -> Optional[str]:
    """Write a result table as CSV or Parquet depending on the file extension."""
    if df.empty:
        logger.warning(f"No rows to export to {output_file}.")
        return None
    if output_file.endswith('.parquet'):
        df.to_parquet(output_file, index=False)
    else:
        df.to_csv(output_file, index=False)
    logger.info(f"Exported {len(df)} records to {output_file}")
    return output_file


def export_reports(db_file: str, export_dir: str, export_format: str = 'csv') -> Dict[str, Optional[str]]:
    """
    Export every report table to export_dir with a timestamped filename.

    Returns:
        Dictionary mapping report name to the exported file (None when nothing was written)
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}")

    os.makedirs(export_dir, exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")  # e.g., "2023-10-06_14-30-45"

    exported = {}
    for name, read_report in REPORTS.items():
        output_file = os.path.join(export_dir, f"{ts}_{name}.{export_format}")
        try:
            exported[name] = export_frame(read_report(db_file), output_file)
        except Exception as e:
            logger.error(f"Failed to export {name}: {e}")
            exported[name] = None
    return exported


# S3 upload: Upload a local file to the specified bucket and key using the AWS credentials.
def upload_file_to_s3(local_file: str, bucket: str, s3_key: str) -> bool:
    s3_client = boto3.client('s3',
                             aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                             aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                             region_name=settings.AWS_REGION)
    try:
        s3_client.upload_file(local_file, bucket, s3_key)
        logger.info(f"Uploaded {local_file} to s3://{bucket}/{s3_key}")
        return True
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to upload {local_file} to s3://{bucket}/{s3_key}: {e}")
        return False


def run_pipeline(deaths_csv: Optional[str],
                 vaccinations_csv: Optional[str],
                 db_file: str = settings.DB_FILE,
                 export_dir: str = settings.EXPORT_DIR,
                 export_format: str = settings.EXPORT_FORMAT,
                 bucket: Optional[str] = settings.S3_BUCKET
                 ) -> Dict[str, Optional[str]]:
    """
    Run the full pipeline: load the raw tables, build the
    PercentPopulationVaccinated view and export the report tables.

    Args:
        deaths_csv: CovidDeaths CSV to ingest (skipped when None)
        vaccinations_csv: CovidVaccination CSV to ingest (skipped when None)
        db_file: Path to the SQLite database
        export_dir: Directory for exported report tables
        export_format: 'csv' or 'parquet'
        bucket: S3 bucket to upload exports to (skipped when None)

    Returns:
        Dictionary mapping report name to the exported file, all None on failure
    """
    report = init_report()
    logger.info("Starting ETL pipeline...")

    try:
        # Bronze layer
        for csv_file, ingest in ((deaths_csv, ingest_deaths), (vaccinations_csv, ingest_vaccinations)):
            if not csv_file:
                continue
            if not os.path.exists(csv_file):
                raise FileNotFoundError(f"CSV file not found: {csv_file}")
            if not ingest(csv_file, db_file, report):
                raise RuntimeError(f"Bronze layer processing failed for {csv_file}")
        logger.info("Bronze layer processing completed successfully.")

        if report['errors']:
            logger.warning(f"{len(report['errors'])} row(s) rejected by data quality checks")

        # Silver layer
        if not silver.create_percent_vaccinated_view(db_file):
            raise RuntimeError("Silver layer processing failed")
        logger.info("Silver layer processing completed successfully.")

        # Gold layer
        exported = export_reports(db_file, export_dir, export_format)
        logger.info("Gold layer processing completed successfully.")

    except Exception as e:
        logger.error(f"Error running pipeline: {e}")
        return {name: None for name in REPORTS}

    if bucket:
        for output_file in exported.values():
            if output_file:
                upload_file_to_s3(output_file, bucket, os.path.basename(output_file))

    logger.info("ETL pipeline completed.")
    return exported


def main(argv=None):
    """Command-line entry point for the pipeline."""
    parser = argparse.ArgumentParser(description='Run the COVID deaths and vaccinations pipeline')
    parser.add_argument('--deaths', type=str, default=settings.DEATHS_CSV, help='Path to CovidDeaths CSV')
    parser.add_argument('--vaccinations', type=str, default=settings.VACCINATIONS_CSV,
                        help='Path to CovidVaccination CSV')
    parser.add_argument('--db', type=str, default=settings.DB_FILE, help='Path to SQLite database')
    parser.add_argument('--export-dir', type=str, default=settings.EXPORT_DIR, help='Directory for exported files')
    parser.add_argument('--format', type=str, choices=EXPORT_FORMATS, default=settings.EXPORT_FORMAT,
                        help='Export file format')
    parser.add_argument('--bucket', type=str, default=settings.S3_BUCKET, help='S3 bucket for exported files')
    parser.add_argument('--export-only', action='store_true', help='Only export data without ingesting')

    args = parser.parse_args(argv)

    setup_logger("ETL_Pipeline", log_file="covid_pipeline.log", log_dir=settings.LOG_DIR)
    for name in ("BronzeLayer", "SilverLayer", "GoldLayer", "DataQuality"):
        setup_logger(name, log_file="covid_pipeline.log", log_dir=settings.LOG_DIR, announce=False)

    if args.export_only:
        result = export_reports(args.db, args.export_dir, args.format)
    else:
        result = run_pipeline(args.deaths, args.vaccinations, args.db,
                              args.export_dir, args.format, args.bucket)

    print("Pipeline execution completed:")
    for name, path in result.items():
        print(f"{name}: {path}")

    return 0 if any(result.values()) else 1


if __name__ == "__main__":
    raise SystemExit(main())
