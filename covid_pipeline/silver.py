import sqlite3
import logging
from typing import Optional

import numpy as np
import pandas as pd

from covid_pipeline import queries
from covid_pipeline.quality import Report, clean_frame, restore_population

logger = logging.getLogger("SilverLayer")

DEATH_NUMERIC_COLUMNS = ['population', 'total_cases', 'new_cases', 'total_deaths', 'new_deaths']
VACCINATION_NUMERIC_COLUMNS = ['new_vaccinations']

ROLLING_COLUMNS = [
    'continent', 'location', 'date', 'population',
    'new_vaccinations', 'RollingPeopleVaccinated'
]


def percent_of(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """numerator * 100 / denominator, NaN where the denominator is 0 or missing."""
    denominator = denominator.astype('float64')
    denominator = denominator.where(denominator != 0)
    return (numerator * 100 / denominator).replace([np.inf, -np.inf], np.nan)


def compute_rolling_vaccinations(deaths: pd.DataFrame,
                                 vaccinations: pd.DataFrame,
                                 include_percent: bool = True,
                                 report: Optional[Report] = None
                                 ) -> pd.DataFrame:
    """
    Join deaths and vaccinations on (location, date) and attach the running
    total of new_vaccinations per location.

    Args:
        deaths: DeathRecord rows (continent, location, date, population, ...)
        vaccinations: VaccinationRecord rows (location, date, new_vaccinations)
        include_percent: Also project PercentVaccinated
        report: Optional validation report collecting rejected rows

    Returns:
        RollingVaccinationRow frame ordered by location, date. Rows dated the
        same within a location keep their input order.
    """
    dea = clean_frame(deaths, queries.DEATHS_TABLE, DEATH_NUMERIC_COLUMNS, report)
    vac = clean_frame(vaccinations, queries.VACCINATIONS_TABLE, VACCINATION_NUMERIC_COLUMNS, report)

    if 'continent' not in dea.columns:
        raise KeyError(f"{queries.DEATHS_TABLE}: missing required column(s): ['continent']")

    joined = dea[['continent', 'location', 'date', 'population']].merge(
        vac[['location', 'date', 'new_vaccinations']],
        on=['location', 'date'],
        how='inner',
    )
    joined = joined[joined['continent'].notna()]
    joined = joined.sort_values(['location', 'date'], kind='mergesort').reset_index(drop=True)

    joined['RollingPeopleVaccinated'] = (
        joined['new_vaccinations'].fillna(0).groupby(joined['location']).cumsum()
    )

    columns = list(ROLLING_COLUMNS)
    if include_percent:
        joined['PercentVaccinated'] = percent_of(joined['RollingPeopleVaccinated'], joined['population'])
        columns.append('PercentVaccinated')

    logger.info(f"Computed rolling vaccinations for {joined['location'].nunique()} locations ({len(joined)} rows)")
    return joined[columns]


def _read(db_file: str, *statements: str) -> pd.DataFrame:
    """Run setup statements then read the last one as a DataFrame."""
    conn = sqlite3.connect(db_file)
    try:
        cursor = conn.cursor()
        for statement in statements[:-1]:
            cursor.execute(statement)
        conn.commit()
        return restore_population(pd.read_sql(statements[-1], conn))
    finally:
        conn.close()


def query_percent_vaccinated_cte(db_file: str) -> pd.DataFrame:
    """Population vs vaccinations through the PopvsVac common table expression."""
    df = _read(db_file, queries.PERCENT_VACCINATED_CTE)
    logger.info(f"Read {len(df)} rows through the PopvsVac CTE")
    return df


def query_percent_vaccinated_temp_table(db_file: str) -> pd.DataFrame:
    """
    Population vs vaccinations through a temporary table.

    The table is dropped and rebuilt on every call and disappears with the
    connection.
    """
    df = _read(
        db_file,
        queries.DROP_PERCENT_VACCINATED_TEMP_TABLE,
        queries.CREATE_PERCENT_VACCINATED_TEMP_TABLE,
        queries.INSERT_PERCENT_VACCINATED_TEMP_TABLE,
        queries.SELECT_PERCENT_VACCINATED_TEMP_TABLE,
    )
    logger.info(f"Read {len(df)} rows through temp table {queries.PERCENT_VACCINATED_TEMP_TABLE}")
    return df


def create_percent_vaccinated_view(db_file: str) -> bool:
    """
    Create (or replace) the PercentPopulationVaccinated view.

    Returns:
        True if successful, False otherwise
    """
    conn = None
    try:
        conn = sqlite3.connect(db_file)
        cursor = conn.cursor()
        cursor.execute(queries.DROP_PERCENT_VACCINATED_VIEW)
        cursor.execute(queries.CREATE_PERCENT_VACCINATED_VIEW)
        conn.commit()
        logger.info(f"View {queries.PERCENT_VACCINATED_VIEW} created in {db_file}")
        return True

    except sqlite3.Error as e:
        logger.error(f"Error creating view {queries.PERCENT_VACCINATED_VIEW}: {e}")
        return False

    finally:
        if conn:
            conn.close()


def read_percent_vaccinated_view(db_file: str) -> pd.DataFrame:
    return _read(db_file, queries.SELECT_PERCENT_VACCINATED_VIEW)
