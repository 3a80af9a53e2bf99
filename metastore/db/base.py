"""Declarative base for the relational mirror."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
