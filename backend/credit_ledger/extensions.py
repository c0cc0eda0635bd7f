# Overview: Flask extension instances for the ledger database.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
