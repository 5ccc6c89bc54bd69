"""Shared Flask extensions for the application."""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy database instance shared across the app. Rows stay loaded after
# a commit so batch jobs can keep reading eagerly joined relationships.
db = SQLAlchemy(session_options={"expire_on_commit": False})
