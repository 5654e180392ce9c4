from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from datetime import date
from typing import Optional


class StudentInfo(BaseModel):
    """Student fields as sent by the registration form.

    Required fields are checked by the registration service so the caller gets
    one message listing what is missing.
    """
    model_config = ConfigDict(extra="ignore")

    full_name: Optional[str] = None
    birth_date: Optional[date] = None
    class_id: Optional[str] = None
    course_id: Optional[str] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    naturality: Optional[str] = None
    cpf: Optional[str] = None
    rg: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    zip_code: Optional[str] = None
    address_street: Optional[str] = None
    address_number: Optional[str] = None
    address_neighborhood: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    special_needs: Optional[str] = None
    medication_use: Optional[str] = None


class GuardianInfo(BaseModel):
    """Guardian fields; accepts the form's guardian_* names as well"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    full_name: Optional[str] = Field(None, validation_alias=AliasChoices("full_name", "guardian_full_name"))
    relationship: Optional[str] = Field(
        None, validation_alias=AliasChoices("relationship", "guardian_relationship")
    )
    phone: Optional[str] = Field(None, validation_alias=AliasChoices("phone", "guardian_phone"))
    email: Optional[str] = Field(None, validation_alias=AliasChoices("email", "guardian_email"))
    cpf: Optional[str] = Field(None, validation_alias=AliasChoices("cpf", "guardian_cpf"))


class StudentRegistrationRequest(BaseModel):
    tenant_id: Optional[str] = None
    school_year: Optional[int] = None
    student: Optional[StudentInfo] = None
    guardian: Optional[GuardianInfo] = None


class StudentRegistrationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    student_id: str = Field(..., serialization_alias="studentId")
    registration_code: str


class PreEnrollmentRequest(StudentInfo):
    tenant_id: Optional[str] = None


class PreEnrollmentResponse(BaseModel):
    success: bool = True
    registration_code: str
