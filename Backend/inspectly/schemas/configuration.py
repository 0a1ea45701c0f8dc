from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ConfigurationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    organization_id: str
    options: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Colors",
                "organization_id": "7f0c1e9e-4d55-4b8e-9d0e-2f7f6a1f0c11",
                "options": ["Red", "Blue"],
            }
        }
    )


class ConfigurationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    options: Optional[List[str]] = None


class Configuration(BaseModel):
    id: str
    name: str
    organization_id: str
    options: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
