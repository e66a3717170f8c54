# backend/almacen/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/almacen.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # hosted Postgres in production
        "sqlite:///almacen.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bulk reads walk the tables in pages of this size until a short page
    INVENTORY_PAGE_SIZE = int(os.environ.get("INVENTORY_PAGE_SIZE", "1000"))

    # Branch listing page size
    CATALOG_PAGE_SIZE = int(os.environ.get("CATALOG_PAGE_SIZE", "10"))

    # Branch stock under this is flagged "low"
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "6"))
