# app/api/dependencies.py - Request scoped dependencies shared by the routers
import re
from typing import List
from fastapi import Request
from pydantic import ValidationError
from loguru import logger

from app.core.config import Settings
from app.api.schemas.tasks import TaskQuery
from app.exceptions.tasks import TaskValidationError

MULTI_VALUE_PARAMS = ("status", "priority", "project_id")

# Query-string names for fields whose python name differs
QUERY_NAMES = {"sort_by": "sortBy", "sort_order": "sortOrder"}


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _multi_values(request: Request, name: str) -> List[str]:
    """
    Collect ``name=a&name=b``, ``name[]=a`` and ``name[0]=a`` forms,
    splitting comma-separated values.
    """
    indexed = re.compile(rf"^{re.escape(name)}\[\d*\]$")
    raw = [value for key, value in request.query_params.multi_items() if key == name or indexed.match(key)]

    values = []
    for item in raw:
        values.extend(part.strip() for part in item.split(",") if part.strip())
    return values


def get_task_query(request: Request) -> TaskQuery:
    """Parse and validate the list endpoint's query string once, at the boundary"""
    params = request.query_params
    raw = {name: _multi_values(request, name) for name in MULTI_VALUE_PARAMS}

    for field in ("page", "limit", "assignee", "search"):
        if params.get(field) not in (None, ""):
            raw[field] = params[field]
    for field, query_name in QUERY_NAMES.items():
        value = params.get(query_name, params.get(field))
        if value not in (None, ""):
            raw[field] = value

    try:
        return TaskQuery(**raw)
    except ValidationError as e:
        errors = [
            {
                "field": ".".join(QUERY_NAMES.get(str(part), str(part)) for part in error["loc"]),
                "message": error["msg"].removeprefix("Value error, "),
            }
            for error in e.errors()
        ]
        logger.warning(f"Rejected task query {dict(params)}: {errors}")
        raise TaskValidationError(errors[0]["message"], errors=errors)
