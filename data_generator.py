import os
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

# location -> (continent, population); a None continent marks an aggregate row
LOCATIONS = {
    "Albania": ("Europe", 2877800),
    "Brazil": ("South America", 212559409),
    "Canada": ("North America", 37742157),
    "India": ("Asia", 1380004385),
    "Kenya": ("Africa", 53771300),
    "New Zealand": ("Oceania", 4822233),
    "United States": ("North America", 331002651),
    "World": (None, 7794798729),
    "Europe": (None, 748962983),
}


def generate_covid_data(num_days: int = 120, start: str = "2021-01-01", seed: int = 42):
    """Return (deaths, vaccinations) DataFrames shaped like the CovidDeaths / CovidVaccination tables."""
    rng = np.random.default_rng(seed)
    start_date = datetime.strptime(start, "%Y-%m-%d")
    deaths, vaccinations = [], []
    for location, (continent, population) in LOCATIONS.items():
        total_cases = 0
        total_deaths = 0
        for day in range(num_days):
            date = (start_date + timedelta(days=day)).strftime("%Y-%m-%d")
            new_cases = int(rng.poisson(population * 1e-5))
            new_deaths = int(rng.binomial(new_cases, 0.02))
            total_cases += new_cases
            total_deaths += new_deaths
            deaths.append({
                "continent": continent,
                "location": location,
                "date": date,
                "population": population,
                "total_cases": total_cases,
                "new_cases": new_cases,
                "total_deaths": total_deaths,
                "new_deaths": new_deaths,
            })
            # Reporting gaps leave new_vaccinations empty
            reported = rng.random() > 0.1
            vaccinations.append({
                "location": location,
                "date": date,
                "new_vaccinations": int(rng.poisson(population * 2e-3)) if reported else None,
            })
    return pd.DataFrame(deaths), pd.DataFrame(vaccinations)


if __name__ == "__main__":
    BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__)))
    output_dir = os.path.join(BASE_DIR, "data", "sample")
    os.makedirs(output_dir, exist_ok=True)
    deaths_df, vaccinations_df = generate_covid_data()
    deaths_df.to_csv(os.path.join(output_dir, "CovidDeaths.csv"), index=False)
    vaccinations_df.to_csv(os.path.join(output_dir, "CovidVaccination.csv"), index=False)
    print(f"Generated CSV files in: {output_dir}")
