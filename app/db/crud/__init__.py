"""CRUD operations for database models"""
from . import task

__all__ = ["task"]
