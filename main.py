import json
import logging
import os

import firebase_admin
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from firebase_admin import credentials

load_dotenv()

from api.common.settings import (  # noqa: E402  settings read the environment loaded above
    FIREBASE_CREDENTIALS_FILE, FIREBASE_CREDENTIALS_JSON_CONTENT, LOG_LEVEL,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("pos")

# Load Firebase credentials
# Priority: FIREBASE_CREDENTIALS_JSON_CONTENT env var (for production)
# Fallback: local service account file (for local development)
if FIREBASE_CREDENTIALS_JSON_CONTENT:
    try:
        cred_dict = json.loads(FIREBASE_CREDENTIALS_JSON_CONTENT)
        cred = credentials.Certificate(cred_dict)
        logger.info("Initialized Firebase from FIREBASE_CREDENTIALS_JSON_CONTENT env var.")
    except json.JSONDecodeError as e:
        logger.critical("FIREBASE_CREDENTIALS_JSON_CONTENT is set but contains invalid JSON: %s", e)
        raise
    except Exception as e:
        logger.critical("Failed to initialize Firebase from FIREBASE_CREDENTIALS_JSON_CONTENT: %s", e)
        raise
else:
    try:
        cred = credentials.Certificate(FIREBASE_CREDENTIALS_FILE)
        logger.info("Initialized Firebase from local JSON file: %s", FIREBASE_CREDENTIALS_FILE)
    except FileNotFoundError:
        logger.critical(
            "Local credentials file '%s' not found. It is required when "
            "FIREBASE_CREDENTIALS_JSON_CONTENT is not set.", FIREBASE_CREDENTIALS_FILE
        )
        raise
    except Exception as e:
        logger.critical("Failed to initialize Firebase from local file '%s': %s", FIREBASE_CREDENTIALS_FILE, e)
        raise

firebase_admin.initialize_app(cred)

app = FastAPI(title="Parts Counter POS API")

from api.auth.routers import router as auth_router  # noqa: E402
from api.products.routers import router as products_router  # noqa: E402
from api.categories.routers import router as categories_router  # noqa: E402
from api.sales.routers import router as sales_router  # noqa: E402
from api.reports.routers import router as reports_router  # noqa: E402

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(products_router, prefix="/products", tags=["products"])
app.include_router(categories_router, prefix="/categories", tags=["categories"])
app.include_router(sales_router, prefix="/sales", tags=["sales"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])


@app.get("/")
def read_root():
    """Root endpoint for the API.
    Returns:
        A simple message indicating the API is running.
    """
    return {"message": "Parts Counter POS API"}


if __name__ == "__main__":
    # Set port from environment variable or default to 8000
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
