# app/db/__init__.py
from .pagination import fetch_all

__all__ = ["fetch_all"]
