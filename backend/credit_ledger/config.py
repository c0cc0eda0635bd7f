# backend/credit_ledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # One SQLite file per shop, stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///credit_ledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sale numbers look like "<prefix>001-20230515"
    SALE_NUMBER_PREFIX = os.environ.get("SALE_NUMBER_PREFIX", "VTA-")

    # Installments due within this many days are reported as upcoming
    UPCOMING_WINDOW_DAYS = int(os.environ.get("UPCOMING_WINDOW_DAYS", "3"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
