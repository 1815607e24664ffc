"""
SQL for the CovidDeaths / CovidVaccination analyses.

All statements target SQLite (window functions need 3.25+). Ratios divide
by NULLIF(..., 0) so a zero denominator yields NULL instead of an error.
"""

DEATHS_TABLE = "CovidDeaths"
VACCINATIONS_TABLE = "CovidVaccination"
PERCENT_VACCINATED_VIEW = "PercentPopulationVaccinated"
PERCENT_VACCINATED_TEMP_TABLE = "PercentPopulationVaccinatedCache"

CREATE_DEATHS_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {DEATHS_TABLE} (
        continent TEXT,
        location TEXT NOT NULL,
        date TEXT NOT NULL,
        population INTEGER,
        total_cases REAL,
        new_cases REAL,
        total_deaths REAL,
        new_deaths REAL,
        PRIMARY KEY (location, date)
    )
"""

CREATE_VACCINATIONS_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {VACCINATIONS_TABLE} (
        location TEXT NOT NULL,
        date TEXT NOT NULL,
        new_vaccinations REAL,
        PRIMARY KEY (location, date)
    )
"""

# -- Exploration ---------------------------------------------------------

SELECT_BASE_DATA = f"""
    SELECT location, date, total_cases, new_cases, total_deaths, population
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
    ORDER BY location, date
"""

# Likelihood of dying if you contract covid in a country
DEATH_PERCENTAGE = f"""
    SELECT location, date, total_cases, total_deaths,
           total_deaths * 100.0 / NULLIF(total_cases, 0) AS DeathPercentage
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
      AND location LIKE :location_pattern ESCAPE '\\'
    ORDER BY location, date
"""

# Share of the population infected
PERCENT_POPULATION_INFECTED = f"""
    SELECT location, date, population, total_cases,
           total_cases * 100.0 / NULLIF(population, 0) AS PercentPopulationInfected
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
      AND location LIKE :location_pattern ESCAPE '\\'
    ORDER BY location, date
"""

# -- Leaderboards --------------------------------------------------------

HIGHEST_INFECTION_RATE = f"""
    SELECT location, population,
           MAX(total_cases) AS HighestInfectionCount,
           MAX(total_cases * 100.0 / NULLIF(population, 0)) AS PercentPopulationInfected
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
    GROUP BY location, population
    ORDER BY PercentPopulationInfected DESC, location
"""

HIGHEST_DEATH_COUNT_BY_COUNTRY = f"""
    SELECT location, population, MAX(total_deaths) AS TotalDeathCount
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
    GROUP BY location, population
    ORDER BY TotalDeathCount DESC, location
"""

HIGHEST_DEATH_COUNT_BY_CONTINENT = f"""
    SELECT continent, MAX(total_deaths) AS TotalDeathCount
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
    GROUP BY continent
    ORDER BY TotalDeathCount DESC, continent
"""

# -- Global numbers ------------------------------------------------------

GLOBAL_DAILY_TOTALS = f"""
    SELECT date,
           SUM(new_cases) AS TotalCases,
           SUM(new_deaths) AS TotalDeaths,
           SUM(new_deaths) * 100.0 / NULLIF(SUM(new_cases), 0) AS DeathPercentage
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
    GROUP BY date
    ORDER BY date
"""

GLOBAL_TOTALS = f"""
    SELECT SUM(new_cases) AS TotalCases,
           SUM(new_deaths) AS TotalDeaths,
           SUM(new_deaths) * 100.0 / NULLIF(SUM(new_cases), 0) AS DeathPercentage
    FROM {DEATHS_TABLE}
    WHERE continent IS NOT NULL
"""

# -- Population vs vaccinations ------------------------------------------

# Running total of vaccinations per location. Ties on date fall back to
# insertion order (rowid); a null count adds nothing to the total.
ROLLING_PEOPLE_VACCINATED = f"""
    SELECT dea.continent, dea.location, dea.date, dea.population, vac.new_vaccinations,
           SUM(COALESCE(vac.new_vaccinations, 0)) OVER (
               PARTITION BY dea.location
               ORDER BY dea.date, dea.rowid
               ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW
           ) AS RollingPeopleVaccinated
    FROM {DEATHS_TABLE} dea
    JOIN {VACCINATIONS_TABLE} vac
      ON dea.location = vac.location
     AND dea.date = vac.date
    WHERE dea.continent IS NOT NULL
"""

PERCENT_VACCINATED_COLUMN = (
    "RollingPeopleVaccinated * 100.0 / NULLIF(population, 0) AS PercentVaccinated"
)

PERCENT_VACCINATED_CTE = f"""
    WITH PopvsVac AS ({ROLLING_PEOPLE_VACCINATED})
    SELECT *, {PERCENT_VACCINATED_COLUMN}
    FROM PopvsVac
    ORDER BY location, date
"""

DROP_PERCENT_VACCINATED_TEMP_TABLE = f"DROP TABLE IF EXISTS temp.{PERCENT_VACCINATED_TEMP_TABLE}"

CREATE_PERCENT_VACCINATED_TEMP_TABLE = f"""
    CREATE TEMP TABLE {PERCENT_VACCINATED_TEMP_TABLE} (
        continent TEXT,
        location TEXT,
        date TEXT,
        population INTEGER,
        new_vaccinations REAL,
        RollingPeopleVaccinated REAL
    )
"""

INSERT_PERCENT_VACCINATED_TEMP_TABLE = f"""
    INSERT INTO temp.{PERCENT_VACCINATED_TEMP_TABLE}
    {ROLLING_PEOPLE_VACCINATED}
"""

SELECT_PERCENT_VACCINATED_TEMP_TABLE = f"""
    SELECT *, {PERCENT_VACCINATED_COLUMN}
    FROM temp.{PERCENT_VACCINATED_TEMP_TABLE}
    ORDER BY location, date
"""

DROP_PERCENT_VACCINATED_VIEW = f"DROP VIEW IF EXISTS {PERCENT_VACCINATED_VIEW}"

# Stored for later visualisations
CREATE_PERCENT_VACCINATED_VIEW = f"""
    CREATE VIEW {PERCENT_VACCINATED_VIEW} AS
    SELECT *, {PERCENT_VACCINATED_COLUMN}
    FROM ({ROLLING_PEOPLE_VACCINATED})
"""

SELECT_PERCENT_VACCINATED_VIEW = f"""
    SELECT * FROM {PERCENT_VACCINATED_VIEW}
    ORDER BY location, date
"""
