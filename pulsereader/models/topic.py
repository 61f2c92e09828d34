"""Topic models."""

from pydantic import Field

from .base import DBModel


class Topic(DBModel):
    """Topic dictionary entry, unique by case-insensitive name."""

    name: str = Field(..., description="Topic name")
