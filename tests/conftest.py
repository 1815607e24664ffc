import pandas as pd
import pytest

from covid_pipeline.bronze import ingest_deaths, ingest_vaccinations


@pytest.fixture
def deaths_df():
    return pd.DataFrame([
        {"continent": "Asia", "location": "Testland", "date": "2021-01-01", "population": 100,
         "total_cases": 5, "new_cases": 5, "total_deaths": 1, "new_deaths": 1},
        {"continent": "Asia", "location": "Testland", "date": "2021-01-02", "population": 100,
         "total_cases": 10, "new_cases": 5, "total_deaths": 2, "new_deaths": 1},
        {"continent": "Europe", "location": "Otherland", "date": "2021-01-02", "population": 1000,
         "total_cases": 250, "new_cases": 150, "total_deaths": 5, "new_deaths": 3},
        {"continent": "Europe", "location": "Otherland", "date": "2021-01-01", "population": 1000,
         "total_cases": 100, "new_cases": 100, "total_deaths": 2, "new_deaths": 2},
        {"continent": None, "location": "World", "date": "2021-01-01", "population": 5000,
         "total_cases": 900, "new_cases": 900, "total_deaths": 40, "new_deaths": 40},
        {"continent": "Africa", "location": "Zeroland", "date": "2021-01-01", "population": 0,
         "total_cases": 3, "new_cases": 3, "total_deaths": 0, "new_deaths": 0},
    ])


@pytest.fixture
def vaccinations_df():
    return pd.DataFrame([
        {"location": "Testland", "date": "2021-01-01", "new_vaccinations": 10},
        {"location": "Testland", "date": "2021-01-02", "new_vaccinations": 20},
        {"location": "Otherland", "date": "2021-01-01", "new_vaccinations": None},
        {"location": "Otherland", "date": "2021-01-02", "new_vaccinations": 50},
        {"location": "World", "date": "2021-01-01", "new_vaccinations": 999},
        {"location": "Zeroland", "date": "2021-01-01", "new_vaccinations": 5},
    ])


@pytest.fixture
def csv_files(tmp_path, deaths_df, vaccinations_df):
    deaths_csv = tmp_path / "CovidDeaths.csv"
    vaccinations_csv = tmp_path / "CovidVaccination.csv"
    deaths_df.to_csv(deaths_csv, index=False)
    vaccinations_df.to_csv(vaccinations_csv, index=False)
    return str(deaths_csv), str(vaccinations_csv)


@pytest.fixture
def db_file(tmp_path, csv_files):
    path = str(tmp_path / "db" / "covid.db")
    deaths_csv, vaccinations_csv = csv_files
    assert ingest_deaths(deaths_csv, path)
    assert ingest_vaccinations(vaccinations_csv, path)
    return path
