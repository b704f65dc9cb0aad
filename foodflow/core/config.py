import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/foodflow_db")

# Application Metadata
PROJECT_NAME = "FoodFlow Order Workflow"
VERSION = "1.0.0"
API_PREFIX = "/api/v1"

# Delivery OTP policy
REQUIRE_DELIVERY_OTP = os.getenv("REQUIRE_DELIVERY_OTP", "true").lower() in ("1", "true", "yes")
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", 3)) # Wrong guesses allowed before lockout

# Ratings
MAX_REVIEW_LENGTH = int(os.getenv("MAX_REVIEW_LENGTH", 1000))

# Client Configuration (used by foodflow.client)
API_BASE_URL = os.getenv("FOODFLOW_API_URL", "http://localhost:8000/api/v1")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 10.0))
POLL_INTERVAL = int(os.getenv("POLL_INTERVAL", 30)) # Customer order list refresh, in seconds
