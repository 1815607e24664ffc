import os
from dotenv import load_dotenv

load_dotenv()  # load environment variables from .env file

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DATA_DIR = os.environ.get("COVID_DATA_DIR", os.path.join(BASE_DIR, "data"))
DB_FILE = os.environ.get("COVID_DB_FILE", os.path.join(DATA_DIR, "covid.db"))
DEATHS_CSV = os.environ.get("COVID_DEATHS_CSV", os.path.join(DATA_DIR, "sample", "CovidDeaths.csv"))
VACCINATIONS_CSV = os.environ.get("COVID_VACCINATIONS_CSV", os.path.join(DATA_DIR, "sample", "CovidVaccination.csv"))
EXPORT_DIR = os.environ.get("COVID_EXPORT_DIR", os.path.join(DATA_DIR, "exports"))
EXPORT_FORMAT = os.environ.get("COVID_EXPORT_FORMAT", "csv").lower()
LOG_DIR = os.environ.get("LOG_DIR", "logs")

# Read AWS credentials and region from environment variables
AWS_ACCESS_KEY_ID = os.environ.get("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
S3_BUCKET = os.environ.get("COVID_S3_BUCKET")
