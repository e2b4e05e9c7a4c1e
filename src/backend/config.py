"""
Application configuration and constants.
"""

import os
from typing import Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API configuration
API_VERSION = "1.0.0"
API_TITLE = "Longevity Forecaster API"
API_DESCRIPTION = "Monte Carlo wealth projection with longevity risk and estate tax breach analysis"

# CORS configuration
CORS_ORIGINS = ["*"]  # In production, replace with specific origins
CORS_CREDENTIALS = True
CORS_METHODS = ["*"]
CORS_HEADERS = ["*"]

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/forecasts.db")

# Simulation defaults
DEFAULT_SIMULATIONS = 10000
MIN_SIMULATIONS = 0
MAX_SIMULATIONS = 100000
DEFAULT_PERCENTILES: Tuple[float, ...] = (10, 50, 90)

# Household defaults used when a user has no stored settings
DEFAULT_HORIZON_YEARS = 40
DEFAULT_ANNUAL_WITHDRAWAL = 120000.0
DEFAULT_GROWTH_ASSET_RATIO = 0.60
DEFAULT_CURRENT_AGE = 60
DEFAULT_HEALTH_MULTIPLIER = 1.0

# Mortality
BASE_LIFE_EXPECTANCY = 85
MAX_AGE = 100

# Estate tax fallbacks (flat top bracket, statutory exemption after TCJA sunset)
DEFAULT_EXEMPTION_THRESHOLD = 7000000.0
DEFAULT_ESTATE_TAX_RATE = 0.40

# Growth asset (GBM), annualized
GROWTH_EXPECTED_RETURN = 0.07
GROWTH_VOLATILITY = 0.15

# Income asset (Vasicek short rate), annualized
INCOME_INITIAL_RATE = 0.04
INCOME_REVERSION_SPEED = 0.1
INCOME_LONG_RUN_MEAN = 0.05
INCOME_RATE_VOLATILITY = 0.02

# Performance settings
USE_PARALLEL_PROCESSING = os.getenv("USE_PARALLEL_PROCESSING", "true").lower() == "true"
SIMULATION_WORKERS = int(os.getenv("SIMULATION_WORKERS", str(os.cpu_count() or 1)))
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))  # Paths per worker task

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
