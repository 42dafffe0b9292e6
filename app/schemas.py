"""Pydantic schemas for records handed to the database."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SensorEventRecord(BaseModel):
    """A single synthetic sensor reading appended under a user's namespace."""

    value: str = Field(..., description="Reading reported by the sensor.")
    time: str = Field(..., description="Wall-clock time of the reading, ISO 8601.")
