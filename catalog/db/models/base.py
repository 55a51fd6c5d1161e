"""Declarative base shared by every catalog table."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
