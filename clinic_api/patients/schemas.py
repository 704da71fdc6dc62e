"""
Patient Schemas - Pydantic models for patient data validation and serialization.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

NAME_PATTERN = r"^[a-zA-Z\s]+$"
REGISTRATION_NUMBER_PATTERN = r"^\d{2}\.\d{2}\.\d{2}\.\d{2}$"
BIRTH_DAY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class PatientCreate(BaseModel):
    """
    Patient Creation Schema

    Fields:
    - name: Letters and spaces, 2-100 characters
    - address: 5-500 characters
    - registration_number: NN.NN.NN.NN (accepts "registrationNumber")
    - birth_place: Letters and spaces (accepts "birthPlace")
    - birth_day: YYYY-MM-DD (accepts "birthDay")
    """
    name: str = Field(..., min_length=2, max_length=100, pattern=NAME_PATTERN)
    address: str = Field(..., min_length=5, max_length=500)
    registration_number: str = Field(..., alias="registrationNumber", pattern=REGISTRATION_NUMBER_PATTERN)
    birth_place: str = Field(..., alias="birthPlace", min_length=2, max_length=100, pattern=NAME_PATTERN)
    birth_day: str = Field(..., alias="birthDay", pattern=BIRTH_DAY_PATTERN)

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class PatientUpdate(BaseModel):
    """Partial update; only the supplied fields change."""
    name: Optional[str] = Field(None, min_length=2, max_length=100, pattern=NAME_PATTERN)
    address: Optional[str] = Field(None, min_length=5, max_length=500)
    registration_number: Optional[str] = Field(None, alias="registrationNumber", pattern=REGISTRATION_NUMBER_PATTERN)
    birth_place: Optional[str] = Field(None, alias="birthPlace", min_length=2, max_length=100, pattern=NAME_PATTERN)
    birth_day: Optional[str] = Field(None, alias="birthDay", pattern=BIRTH_DAY_PATTERN)

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class PatientResponse(BaseModel):
    id: str
    name: str
    address: str
    registration_number: str
    birth_place: str
    birth_day: str
    full_birth_info: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
