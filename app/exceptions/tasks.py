# app/exceptions/tasks.py
from typing import List, Optional
from fastapi import HTTPException, status

class TaskValidationError(HTTPException):
    """Bad or missing field, invalid enum value, title length"""
    def __init__(self, detail: str = "Validation failed", errors: Optional[List[dict]] = None):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        self.errors = errors

class TaskNotFoundError(HTTPException):
    """Task id does not resolve to a row"""
    def __init__(self, task_id: Optional[int] = None):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
        self.task_id = task_id

class StoreError(HTTPException):
    """Connectivity problem, constraint violation or any unexpected store failure"""
    def __init__(self, detail: str = "Database operation failed", cause: Optional[BaseException] = None):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
        self.cause = cause
