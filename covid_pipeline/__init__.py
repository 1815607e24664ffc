"""
COVID Deaths & Vaccinations Analytics Package

Modules:
    bronze.py   - Loads CovidDeaths / CovidVaccination CSVs into SQLite.
    quality.py  - Row-level data quality checks and validation reports.
    queries.py  - SQL for every report, the PopvsVac CTE, temp table and view.
    silver.py   - Rolling people vaccinated per location (pandas and SQL).
    gold.py     - Infection/death leaderboards and global numbers.
    run_pipeline.py - Orchestrates the pipeline and exports report tables.
    settings.py - Configuration read from the environment / .env.

Version: 1.0.0
"""
__version__ = "1.0.0"
