# ledgerlens/main.py

import logging

from fastapi import FastAPI

from . import config
from .db import init_db
from .routes import router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------
# Initialize DB tables
# ---------------------------

init_db()

app = FastAPI(title="LedgerLens", description="Balance sheet extraction and analysis")
app.include_router(router)
