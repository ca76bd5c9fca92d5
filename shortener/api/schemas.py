"""
API Request and Response Schemas

URLs are plain strings rather than HttpUrl: codes are derived from the exact
bytes of the URL, so the API must not normalise it before shortening.
"""

from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    """Request model for the JSON shortening endpoint."""
    url: str = Field(..., description="The long URL to shorten")


class ShortenResponse(BaseModel):
    """Response model for the JSON shortening endpoint (201 and 409)."""
    result: str = Field(..., description="The complete short URL")


class BatchRequestItem(BaseModel):
    correlation_id: str = Field(..., description="Caller token echoed in the response")
    original_url: str = Field(..., description="The long URL to shorten")


class BatchResponseItem(BaseModel):
    correlation_id: str
    short_url: str


class UserURLResponse(BaseModel):
    short_url: str
    original_url: str


class StatsResponse(BaseModel):
    """Response model for the internal statistics endpoint."""
    urls: int
    users: int
