"""
Row-level data quality checks shared by the bronze, silver and gold layers.

Bad rows never abort a batch: they are dropped and described in a
validation report so the caller can decide what to do with them.
"""
import logging
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger("DataQuality")

KEY_COLUMNS = ['location', 'date']

Report = Dict[str, List[str]]


class DataQualityError(ValueError):
    """A value that cannot be read as the type its column requires."""

    def __init__(self, column: str, value: Any, reason: str = "not numeric"):
        self.column = column
        self.value = value
        super().__init__(f"Invalid value {value!r} in column '{column}': {reason}")


def init_report() -> Report:
    return {
        'errors': [],
        'warnings': [],
        'info': []
    }


def log_info(message: str, report: Optional[Report] = None) -> None:
    logger.info(message)
    if report is not None:
        report['info'].append(message)


def log_warning(message: str, report: Optional[Report] = None) -> None:
    logger.warning(message)
    if report is not None:
        report['warnings'].append(message)


def log_error(message: str, report: Optional[Report] = None) -> None:
    logger.error(message)
    if report is not None:
        report['errors'].append(message)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_count(value: Any, column: str) -> Optional[float]:
    """
    Read a case/death/vaccination count.

    Returns None for a missing value. Raises DataQualityError for anything
    that is present but not a finite number.
    """
    if is_blank(value):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise DataQualityError(column, value)
    if number != number or number in (float('inf'), float('-inf')):
        raise DataQualityError(column, value)
    return number


def parse_population(value: Any) -> Optional[int]:
    number = parse_count(value, 'population')
    if number is None:
        return None
    if not number.is_integer():
        raise DataQualityError('population', value, "not a whole number")
    return int(number)


def parse_date(value: Any) -> Optional[str]:
    """Normalise a date to ISO 'YYYY-MM-DD'; None when missing."""
    if is_blank(value):
        return None
    try:
        return pd.Timestamp(str(value).strip()).strftime('%Y-%m-%d')
    except (TypeError, ValueError):
        raise DataQualityError('date', value, "not a date")


def clean_frame(df: pd.DataFrame,
                table_name: str,
                numeric_columns: List[str],
                report: Optional[Report] = None
                ) -> pd.DataFrame:
    """
    Return a cleaned copy of a DeathRecord or VaccinationRecord frame.

    - rows missing location or date are dropped silently
    - unparsable dates and non-numeric counts drop the row and are reported
    - duplicated (location, date) keys keep the first row and are reported
    - empty continent strings become null

    Raises KeyError when a required column is missing.
    """
    missing = [col for col in KEY_COLUMNS + numeric_columns if col not in df.columns]
    if missing:
        raise KeyError(f"{table_name}: missing required column(s): {missing}")

    out = df.copy()

    if 'continent' in out.columns:
        out['continent'] = out['continent'].where(~out['continent'].map(is_blank), None)

    # Malformed rows: no key, nothing to join on
    keyless = out['location'].map(is_blank) | out['date'].map(is_blank)
    if keyless.any():
        logger.debug(f"{table_name}: dropping {int(keyless.sum())} row(s) without location or date")
        out = out[~keyless].copy()

    out['location'] = out['location'].astype(str).str.strip()

    dates = pd.to_datetime(out['date'], errors='coerce', format='mixed')
    bad_dates = dates.isna()
    if bad_dates.any():
        for value in out.loc[bad_dates, 'date']:
            log_error(f"{table_name}: {DataQualityError('date', value, 'not a date')}", report)
        out = out[~bad_dates].copy()
        dates = dates[~bad_dates]
    out['date'] = dates.dt.normalize()

    for col in numeric_columns:
        blank = out[col].map(is_blank)
        converted = pd.to_numeric(out[col].where(~blank), errors='coerce')
        bad = converted.isna() & ~blank
        if bad.any():
            for location, date, value in out.loc[bad, ['location', 'date', col]].itertuples(index=False):
                log_error(
                    f"{table_name}: {location} {date:%Y-%m-%d}: {DataQualityError(col, value)}",
                    report
                )
            out = out[~bad].copy()
            converted = converted[~bad]
        if col == 'population':
            fractional = converted.notna() & (converted % 1 != 0)
            if fractional.any():
                for location, date, value in out.loc[fractional, ['location', 'date', col]].itertuples(index=False):
                    log_error(
                        f"{table_name}: {location} {date:%Y-%m-%d}: "
                        f"{DataQualityError(col, value, 'not a whole number')}",
                        report
                    )
                out = out[~fractional].copy()
                converted = converted[~fractional]
            out[col] = converted.astype('Int64')
        else:
            out[col] = converted.astype(float)

    duplicates = out.duplicated(subset=KEY_COLUMNS, keep='first')
    if duplicates.any():
        log_warning(
            f"{table_name}: {int(duplicates.sum())} duplicated (location, date) row(s), keeping first",
            report
        )
        out = out[~duplicates]

    return out.reset_index(drop=True)


def restore_population(df: pd.DataFrame) -> pd.DataFrame:
    """Keep population a whole number when SQLite NULLs would turn it into float."""
    if 'population' in df.columns:
        df['population'] = df['population'].astype('Int64')
    return df
