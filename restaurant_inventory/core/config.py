import os
from decimal import Decimal

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/restaurant_db")
GENERATE_SCHEMAS = os.getenv("GENERATE_SCHEMAS", "true").lower() == "true"

# Application Metadata
PROJECT_NAME = "Restaurant Inventory Service"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Stock keeping
DEFAULT_LOW_STOCK_THRESHOLD = Decimal(os.getenv("DEFAULT_LOW_STOCK_THRESHOLD", "10"))
QUANTITY_PLACES = Decimal("0.001")  # matches DECIMAL(10,3) on products / ledger
MAX_QUANTITY = Decimal("1e7")  # exclusive bound on any single quantity that fits the columns

# Pagination limits for list endpoints
PRODUCT_PAGE_LIMIT_DEFAULT = int(os.getenv("PRODUCT_PAGE_LIMIT_DEFAULT", 20))
PRODUCT_PAGE_LIMIT_MAX = int(os.getenv("PRODUCT_PAGE_LIMIT_MAX", 100))
TRANSACTION_PAGE_LIMIT_DEFAULT = int(os.getenv("TRANSACTION_PAGE_LIMIT_DEFAULT", 50))
TRANSACTION_PAGE_LIMIT_MAX = int(os.getenv("TRANSACTION_PAGE_LIMIT_MAX", 200))

# When enabled the reconciler refuses an order that already has sale rows in the ledger,
# instead of trusting the order status edge-trigger alone.
RECONCILE_REJECT_DUPLICATES = os.getenv("RECONCILE_REJECT_DUPLICATES", "false").lower() == "true"
