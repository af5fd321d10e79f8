"""Common response envelope used across the API.

Every body carries `success` and `message`; payload fields sit beside them.
"""

from pydantic import BaseModel


class APIResponse(BaseModel):
    success: bool = True
    message: str = ""


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
