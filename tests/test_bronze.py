import sqlite3

import pytest

from covid_pipeline import bronze
from covid_pipeline.quality import init_report

DEATHS_HEADER = "iso_code,continent,location,date,population,total_cases,new_cases,total_deaths,new_deaths\n"


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


def _count(db_file, table):
    conn = sqlite3.connect(db_file)
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


def test_validate_csv_structure(tmp_path):
    good = _write(tmp_path / "good.csv", DEATHS_HEADER)
    missing = _write(tmp_path / "missing.csv", "location,date\n")
    empty = _write(tmp_path / "empty.csv", "")

    assert bronze.validate_csv_structure(good, bronze.DEATH_COLUMNS)
    assert not bronze.validate_csv_structure(missing, bronze.DEATH_COLUMNS)
    assert not bronze.validate_csv_structure(empty, bronze.DEATH_COLUMNS)
    assert not bronze.validate_csv_structure(str(tmp_path / "absent.csv"), bronze.DEATH_COLUMNS)


def test_ingest_deaths_keeps_column_values(tmp_path):
    csv_file = _write(tmp_path / "deaths.csv", DEATHS_HEADER + (
        "TST,Asia,Testland,2021-01-01,100,5,5,1,1\n"
        "OWID_WRL,,World,2021-01-01,5000,900,900,40,40\n"
    ))
    db_file = str(tmp_path / "covid.db")

    assert bronze.ingest_deaths(csv_file, db_file)

    df = bronze.load_table(db_file, "CovidDeaths")
    assert list(df.columns) == bronze.DEATH_COLUMNS
    assert df["location"].tolist() == ["Testland", "World"]
    assert df["continent"].iloc[0] == "Asia"
    assert df["continent"].iloc[1] is None
    assert df["population"].tolist() == [100, 5000]


def test_ingest_vaccinations_reports_bad_rows(tmp_path):
    csv_file = _write(tmp_path / "vaccinations.csv", (
        "location,date,new_vaccinations\n"
        "Testland,2021-01-01,10\n"
        "Testland,2021-01-02,\n"
        "Testland,2021-01-03,lots\n"
        ",2021-01-04,5\n"
        "Testland,,5\n"
        "Testland,not-a-date,5\n"
        "Testland,2021-01-01,99\n"
        "Testland,2021-01-05,12.5\n"
    ))
    db_file = str(tmp_path / "covid.db")
    report = init_report()

    assert bronze.ingest_vaccinations(csv_file, db_file, report)

    df = bronze.load_table(db_file, "CovidVaccination")
    assert df["date"].tolist() == ["2021-01-01", "2021-01-02", "2021-01-05"]
    assert df["new_vaccinations"].iloc[0] == 10
    assert df["new_vaccinations"].isna().iloc[1]
    assert df["new_vaccinations"].iloc[2] == pytest.approx(12.5)

    assert len(report["errors"]) == 2
    assert any("lots" in message for message in report["errors"])
    assert any("not-a-date" in message for message in report["errors"])
    assert len(report["warnings"]) == 1
    assert report["info"]


def test_ingest_rejects_missing_columns(tmp_path):
    csv_file = _write(tmp_path / "vaccinations.csv", "location,date\nTestland,2021-01-01\n")
    db_file = str(tmp_path / "covid.db")

    assert not bronze.ingest_vaccinations(csv_file, db_file)


def test_ingest_normalises_dates(tmp_path):
    csv_file = _write(tmp_path / "vaccinations.csv", (
        "location,date,new_vaccinations\n"
        "Testland,2021-01-01 00:00:00.000,10\n"
    ))
    db_file = str(tmp_path / "covid.db")

    assert bronze.ingest_vaccinations(csv_file, db_file)
    assert bronze.load_table(db_file, "CovidVaccination")["date"].tolist() == ["2021-01-01"]


def test_reingest_skips_existing_rows(csv_files, tmp_path):
    deaths_csv, _ = csv_files
    db_file = str(tmp_path / "covid.db")
    report = init_report()

    assert bronze.ingest_deaths(deaths_csv, db_file)
    assert bronze.ingest_deaths(deaths_csv, db_file, report)

    assert _count(db_file, "CovidDeaths") == 6
    assert len(report["warnings"]) == 6


def test_load_table_rejects_unknown_table(db_file):
    with pytest.raises(ValueError):
        bronze.load_table(db_file, "sqlite_master")


def test_invalid_utf8_row_is_reported_not_fatal(tmp_path):
    csv_file = tmp_path / "vaccinations.csv"
    csv_file.write_bytes(
        b"location,date,new_vaccinations\n"
        b"Testland,2021-01-01,10\n"
        b"Test\xffland,2021-01-02,5\n"
        b"Testland,2021-01-03,7\n"
    )
    db_file = str(tmp_path / "covid.db")
    report = init_report()

    assert bronze.ingest_vaccinations(str(csv_file), db_file, report)

    df = bronze.load_table(db_file, "CovidVaccination")
    assert df["date"].tolist() == ["2021-01-01", "2021-01-03"]
    assert len(report["errors"]) == 1
    assert "invalid UTF-8" in report["errors"][0]
    assert "location" in report["errors"][0]


def test_invalid_utf8_header_fails_validation(tmp_path):
    csv_file = tmp_path / "deaths.csv"
    csv_file.write_bytes(
        b"continent,loc\xffation,date,population,total_cases,new_cases,total_deaths,new_deaths\n"
        b"Asia,Testland,2021-01-01,100,5,5,1,1\n"
    )
    db_file = str(tmp_path / "covid.db")

    assert not bronze.validate_csv_structure(str(csv_file), bronze.DEATH_COLUMNS)
    assert not bronze.ingest_deaths(str(csv_file), db_file)


def test_invalid_utf8_in_unused_column_is_ignored(tmp_path):
    csv_file = tmp_path / "vaccinations.csv"
    csv_file.write_bytes(
        b"iso_code,location,date,new_vaccinations\n"
        b"T\xffT,Testland,2021-01-01,10\n"
    )
    db_file = str(tmp_path / "covid.db")
    report = init_report()

    assert bronze.ingest_vaccinations(str(csv_file), db_file, report)
    assert report["errors"] == []
    assert bronze.load_table(db_file, "CovidVaccination")["location"].tolist() == ["Testland"]
