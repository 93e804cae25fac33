from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class CreateRecordRequest(BaseModel):
    document_type: str
    filename: str
    fraud_score: int
    fields: Dict[str, Optional[str]] = Field(default_factory=dict)
    risk_factors: Optional[List[str]] = None
    user_entered_name: Optional[str] = None
    verified_name: Optional[str] = None

    @field_validator("filename")
    @classmethod
    def filename_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError("filename cannot be empty")
        return v


class DecisionRequest(BaseModel):
    user: Optional[str] = None
    comment: Optional[str] = None


class ReopenRequest(BaseModel):
    user: Optional[str] = None
    comment: Optional[str] = None
    risk_factors: Optional[List[str]] = None
