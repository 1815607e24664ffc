import sqlite3
import logging
from typing import Optional

import numpy as np
import pandas as pd

from covid_pipeline import queries
from covid_pipeline.quality import Report, clean_frame, restore_population
from covid_pipeline.silver import DEATH_NUMERIC_COLUMNS, percent_of

logger = logging.getLogger("GoldLayer")


def _countries(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    """Cleaned DeathRecords without the continent-level aggregate rows."""
    if 'continent' not in deaths.columns:
        raise KeyError(f"{queries.DEATHS_TABLE}: missing required column(s): ['continent']")
    df = clean_frame(deaths, queries.DEATHS_TABLE, DEATH_NUMERIC_COLUMNS, report)
    return df[df['continent'].notna()]


def _location_filter(df: pd.DataFrame, location_contains: Optional[str]) -> pd.DataFrame:
    if not location_contains:
        return df
    return df[df['location'].str.contains(location_contains, case=False, regex=False)]


def _sum_or_nan(series: pd.Series) -> float:
    # SQL SUM over nothing but NULLs is NULL, not 0
    return series.sum(min_count=1)


def _read_sql(db_file: str, query: str, params: Optional[dict] = None) -> pd.DataFrame:
    conn = sqlite3.connect(db_file)
    try:
        return restore_population(pd.read_sql(query, conn, params=params))
    finally:
        conn.close()


def _like_pattern(location_contains: Optional[str]) -> dict:
    """LIKE parameter matching location_contains literally, as the pandas filter does."""
    if not location_contains:
        return {'location_pattern': "%"}
    escaped = (
        location_contains.replace('\\', '\\\\')
        .replace('%', '\\%')
        .replace('_', '\\_')
    )
    return {'location_pattern': f"%{escaped}%"}


# -- Exploration ---------------------------------------------------------

def select_base_data(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    df = _countries(deaths, report)
    columns = ['location', 'date', 'total_cases', 'new_cases', 'total_deaths', 'population']
    return df.sort_values(['location', 'date'], kind='mergesort')[columns].reset_index(drop=True)


def death_percentage(deaths: pd.DataFrame,
                     location_contains: Optional[str] = None,
                     report: Optional[Report] = None
                     ) -> pd.DataFrame:
    """
    Total cases vs total deaths: the likelihood of dying once infected.

    Args:
        deaths: DeathRecord rows
        location_contains: Keep only locations containing this text (case-insensitive)
        report: Optional validation report collecting rejected rows
    """
    df = _location_filter(_countries(deaths, report), location_contains)
    df = df.sort_values(['location', 'date'], kind='mergesort').reset_index(drop=True)
    df['DeathPercentage'] = percent_of(df['total_deaths'], df['total_cases'])
    return df[['location', 'date', 'total_cases', 'total_deaths', 'DeathPercentage']]


def percent_population_infected(deaths: pd.DataFrame,
                                location_contains: Optional[str] = None,
                                report: Optional[Report] = None
                                ) -> pd.DataFrame:
    """Total cases vs population: the share of the population infected."""
    df = _location_filter(_countries(deaths, report), location_contains)
    df = df.sort_values(['location', 'date'], kind='mergesort').reset_index(drop=True)
    df['PercentPopulationInfected'] = percent_of(df['total_cases'], df['population'])
    return df[['location', 'date', 'population', 'total_cases', 'PercentPopulationInfected']]


# -- Leaderboards --------------------------------------------------------

def highest_infection_rate(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    """
    Countries with the highest infection rate compared to population.

    A zero population gives a null rate for that country only.
    """
    df = _countries(deaths, report).copy()
    df['PercentPopulationInfected'] = percent_of(df['total_cases'], df['population'])
    result = (
        df.groupby(['location', 'population'], dropna=False)
        .agg(HighestInfectionCount=('total_cases', 'max'),
             PercentPopulationInfected=('PercentPopulationInfected', 'max'))
        .reset_index()
    )
    return result.sort_values(
        ['PercentPopulationInfected', 'location'],
        ascending=[False, True],
        na_position='last',
    ).reset_index(drop=True)


def highest_death_count_by_country(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    df = _countries(deaths, report)
    result = (
        df.groupby(['location', 'population'], dropna=False)
        .agg(TotalDeathCount=('total_deaths', 'max'))
        .reset_index()
    )
    return result.sort_values(
        ['TotalDeathCount', 'location'],
        ascending=[False, True],
        na_position='last',
    ).reset_index(drop=True)


def highest_death_count_by_continent(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    df = _countries(deaths, report)
    result = (
        df.groupby('continent')
        .agg(TotalDeathCount=('total_deaths', 'max'))
        .reset_index()
    )
    return result.sort_values(
        ['TotalDeathCount', 'continent'],
        ascending=[False, True],
        na_position='last',
    ).reset_index(drop=True)


# -- Global numbers ------------------------------------------------------

def global_daily_totals(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    """
    New cases and deaths summed across countries per date.

    DeathPercentage is null on days without cases.
    """
    df = _countries(deaths, report)
    result = (
        df.groupby('date')
        .agg(TotalCases=('new_cases', _sum_or_nan), TotalDeaths=('new_deaths', _sum_or_nan))
        .reset_index()
        .sort_values('date')
        .reset_index(drop=True)
    )
    result['DeathPercentage'] = percent_of(result['TotalDeaths'], result['TotalCases'])
    return result


def global_totals(deaths: pd.DataFrame, report: Optional[Report] = None) -> pd.DataFrame:
    df = _countries(deaths, report)
    total_cases = _sum_or_nan(df['new_cases'])
    total_deaths = _sum_or_nan(df['new_deaths'])
    if pd.isna(total_cases) or total_cases == 0 or pd.isna(total_deaths):
        percentage = np.nan
    else:
        percentage = total_deaths * 100 / total_cases
    return pd.DataFrame([{
        'TotalCases': total_cases,
        'TotalDeaths': total_deaths,
        'DeathPercentage': percentage,
    }])


# -- Same reports read from the database ---------------------------------

def select_base_data_from_db(db_file: str) -> pd.DataFrame:
    return _read_sql(db_file, queries.SELECT_BASE_DATA)


def death_percentage_from_db(db_file: str, location_contains: Optional[str] = None) -> pd.DataFrame:
    return _read_sql(db_file, queries.DEATH_PERCENTAGE, _like_pattern(location_contains))


def percent_population_infected_from_db(db_file: str, location_contains: Optional[str] = None) -> pd.DataFrame:
    return _read_sql(db_file, queries.PERCENT_POPULATION_INFECTED, _like_pattern(location_contains))


def highest_infection_rate_from_db(db_file: str) -> pd.DataFrame:
    return _read_sql(db_file, queries.HIGHEST_INFECTION_RATE)


def highest_death_count_by_country_from_db(db_file: str) -> pd.DataFrame:
    return _read_sql(db_file, queries.HIGHEST_DEATH_COUNT_BY_COUNTRY)


def highest_death_count_by_continent_from_db(db_file: str) -> pd.DataFrame:
    return _read_sql(db_file, queries.HIGHEST_DEATH_COUNT_BY_CONTINENT)


def global_daily_totals_from_db(db_file: str) -> pd.DataFrame:
    return _read_sql(db_file, queries.GLOBAL_DAILY_TOTALS)


def global_totals_from_db(db_file: str) -> pd.DataFrame:
    return _read_sql(db_file, queries.GLOBAL_TOTALS)
