import sqlite3
import csv
import os
import logging
from typing import Optional

import pandas as pd

from covid_pipeline import queries
from covid_pipeline.quality import (
    DataQualityError, Report, is_blank, log_error, log_info, log_warning,
    parse_count, parse_date, parse_population,
)

logger = logging.getLogger("BronzeLayer")

DEATH_COLUMNS = [
    'continent', 'location', 'date', 'population',
    'total_cases', 'new_cases', 'total_deaths', 'new_deaths'
]
VACCINATION_COLUMNS = ['location', 'date', 'new_vaccinations']

# Files are decoded with errors='replace'; bad bytes show up as U+FFFD
UNDECODABLE = '\ufffd'


def create_bronze_tables(cursor):
    """
    Create the CovidDeaths and CovidVaccination tables if they don't already exist.
    """
    cursor.execute(queries.CREATE_DEATHS_TABLE)
    cursor.execute(queries.CREATE_VACCINATIONS_TABLE)


def validate_csv_structure(csv_file: str, required_columns: list) -> bool:
    """
    Validate the structure of the CSV file.

    Args:
        csv_file: Path to the CSV file
        required_columns: List of required column names

    Returns:
        True if the CSV structure is valid, False otherwise
    """
    try:
        with open(csv_file, newline='', encoding='utf-8', errors='replace') as f:
            reader = csv.DictReader(f)
            csv_columns = reader.fieldnames
            if not csv_columns:
                logger.error("CSV file is empty or has no headers.")
                return False
            missing_columns = [col for col in required_columns if col not in csv_columns]
            if missing_columns:
                logger.error(f"CSV file is missing required columns: {missing_columns}")
                return False
        return True
    except (OSError, csv.Error) as e:
        logger.error(f"Error validating CSV structure: {e}")
        return False


def _check_decoded(row: dict, columns: list) -> None:
    """Reject a row whose required fields held bytes that are not valid UTF-8."""
    for col in columns:
        value = row.get(col)
        if isinstance(value, str) and UNDECODABLE in value:
            raise DataQualityError(col, value, "invalid UTF-8")


def _death_values(row: dict) -> Optional[tuple]:
    """Typed DeathRecord values, or None for a row without location/date."""
    if is_blank(row['location']) or is_blank(row['date']):
        return None
    return (
        None if is_blank(row['continent']) else row['continent'].strip(),
        row['location'].strip(),
        parse_date(row['date']),
        parse_population(row['population']),
        parse_count(row['total_cases'], 'total_cases'),
        parse_count(row['new_cases'], 'new_cases'),
        parse_count(row['total_deaths'], 'total_deaths'),
        parse_count(row['new_deaths'], 'new_deaths'),
    )


def _vaccination_values(row: dict) -> Optional[tuple]:
    """Typed VaccinationRecord values, or None for a row without location/date."""
    if is_blank(row['location']) or is_blank(row['date']):
        return None
    return (
        row['location'].strip(),
        parse_date(row['date']),
        parse_count(row['new_vaccinations'], 'new_vaccinations'),
    )


def _ingest(csv_file: str, db_file: str, table: str, columns: list,
            to_values, report: Optional[Report]) -> bool:
    if not validate_csv_structure(csv_file, columns):
        logger.error(f"CSV structure validation failed for {csv_file}. Aborting ingestion.")
        return False

    conn = None
    try:
        # Ensure the directory for the database exists
        db_dir = os.path.dirname(db_file)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        conn = sqlite3.connect(db_file)
        cursor = conn.cursor()
        create_bronze_tables(cursor)
        conn.commit()

        insert = (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )

        record_count = 0
        skipped = 0
        with open(csv_file, newline='', encoding='utf-8', errors='replace') as f:
            reader = csv.DictReader(f)
            for line_no, row in enumerate(reader, start=2):
                try:
                    _check_decoded(row, columns)
                    values = to_values(row)
                    if values is None:
                        skipped += 1
                        continue
                    cursor.execute(insert, values)
                    record_count += 1
                except sqlite3.IntegrityError:
                    log_warning(
                        f"{table}: record {row['location']} {row['date']} already exists. Skipping insertion.",
                        report
                    )
                except DataQualityError as e:
                    log_error(f"{table}: line {line_no}: {e}", report)

        conn.commit()
        if skipped:
            logger.debug(f"{table}: dropped {skipped} row(s) without location or date")
        log_info(f"Successfully ingested {record_count} records into {table}.", report)
        return True

    except (sqlite3.Error, csv.Error) as e:
        log_error(f"Error during {table} ingestion: {e}", report)
        return False

    finally:
        if conn:
            conn.close()


def ingest_deaths(csv_file: str, db_file: str, report: Optional[Report] = None) -> bool:
    """
    Ingest DeathRecords from a CSV file into the CovidDeaths table.

    Args:
        csv_file: Path to the CSV file
        db_file: Path to the SQLite database file
        report: Optional validation report collecting rejected rows

    Returns:
        True if ingestion is successful, False otherwise
    """
    return _ingest(csv_file, db_file, queries.DEATHS_TABLE, DEATH_COLUMNS,
                   _death_values, report)


def ingest_vaccinations(csv_file: str, db_file: str, report: Optional[Report] = None) -> bool:
    """
    Ingest VaccinationRecords from a CSV file into the CovidVaccination table.

    Args:
        csv_file: Path to the CSV file
        db_file: Path to the SQLite database file
        report: Optional validation report collecting rejected rows

    Returns:
        True if ingestion is successful, False otherwise
    """
    return _ingest(csv_file, db_file, queries.VACCINATIONS_TABLE, VACCINATION_COLUMNS,
                   _vaccination_values, report)


def load_table(db_file: str, table: str) -> pd.DataFrame:
    """Read one of the raw tables back as a DataFrame."""
    if table not in (queries.DEATHS_TABLE, queries.VACCINATIONS_TABLE):
        raise ValueError(f"Unknown table: {table}")
    conn = sqlite3.connect(db_file)
    try:
        return pd.read_sql(f"SELECT * FROM {table}", conn)
    finally:
        conn.close()


if __name__ == "__main__":
    from covid_pipeline import settings
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    logger.info(f"Ingesting data from: {settings.DEATHS_CSV} and {settings.VACCINATIONS_CSV}")
    logger.info(f"Saving database to: {settings.DB_FILE}")

    for csv_path, ingest in ((settings.DEATHS_CSV, ingest_deaths),
                             (settings.VACCINATIONS_CSV, ingest_vaccinations)):
        if not os.path.exists(csv_path):
            logger.error(f"CSV file not found: {csv_path}")
        elif ingest(csv_path, settings.DB_FILE):
            logger.info(f"Bronze layer ingestion of {csv_path} completed successfully.")
        else:
            logger.error(f"Bronze layer ingestion of {csv_path} failed.")
