from pydantic import BaseModel, ConfigDict, Field
from typing import Any
from datetime import datetime


class CVSaveRequest(BaseModel):
    """Schema for saving a CV. The payload is stored without validation."""
    model_config = ConfigDict(populate_by_name=True)

    cv_data: Any = Field(None, alias="cvData")


class CVSaveResponse(BaseModel):
    """Schema for CV save response"""
    message: str


class CVResponse(BaseModel):
    """Schema for CV response"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    user_id: str = Field(..., alias="userId")
    cv_data: Any = Field(None, alias="cvData")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_model(cls, cv) -> "CVResponse":
        return cls(
            id=str(cv.id),
            user_id=cv.user_id,
            cv_data=cv.cv_data,
            created_at=cv.created_at,
            updated_at=cv.updated_at,
        )
