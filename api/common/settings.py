"""
Application settings read from the environment.
Values can be provided through a .env file, which main.py loads at startup.
"""
import os

import pytz

ENV = os.environ.get("ENV", "production")

# Firebase credentials
FIREBASE_CREDENTIALS_JSON_CONTENT = os.environ.get("FIREBASE_CREDENTIALS_JSON_CONTENT")
FIREBASE_CREDENTIALS_FILE = os.environ.get("FIREBASE_CREDENTIALS_FILE", "firebase-adminsdk.json")

# Shop local time zone, used for "today" and dashboard windows
APP_TIMEZONE = pytz.timezone(os.environ.get("APP_TIMEZONE", "Asia/Kolkata"))

LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", 10))
TOP_PRODUCTS_LIMIT = int(os.environ.get("TOP_PRODUCTS_LIMIT", 5))

# Sessions older than this are rejected and must sign in again
SESSION_MAX_AGE_HOURS = int(os.environ.get("SESSION_MAX_AGE_HOURS", 8))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Fixed business rules
TAX_RATE = "0.18"
PRODUCT_IMAGES_FOLDER = "product-images"
WALK_IN_CUSTOMER_NAME = "Walk-in Customer"
UNKNOWN_PRODUCT_NAME = "Product Unavailable"


def is_local() -> bool:
    """True when running with the local development auth bypass."""
    return os.getenv("ENV") == "local"
