"""Shared error handling utilities for API endpoints."""

from fastapi import HTTPException, status


def invalid_date_range(reason: str) -> HTTPException:
    """Create a standardized HTTP 422 exception for a rejected date range.

    Args:
        reason: Why the range was rejected.

    Returns:
        An HTTPException with 422 status and detail message.
    """
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=reason,
    )
