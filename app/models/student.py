"""
Students and their guardians.

registration_code is unique per tenant and is never rewritten once assigned.
Guardians are created in the same registration request and linked through
student_guardians, with exactly one primary guardian per registration.
"""
import enum
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base, generate_uuid

REGISTRATION_CODE_CONSTRAINT = "uq_students_tenant_registration_code"


class StudentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PRE_ENROLLED = "pre-enrolled"


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    # Login account, only for students that access the portal
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)

    registration_code = Column(String(32), nullable=False)
    school_year = Column(Integer, nullable=True)
    status = Column(Enum(StudentStatus), nullable=False, default=StudentStatus.ACTIVE)

    full_name = Column(String(255), nullable=False)
    birth_date = Column(Date, nullable=True)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=True, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True, index=True)

    # Personal data
    gender = Column(String(20), nullable=True)
    nationality = Column(String(100), nullable=True)
    naturality = Column(String(100), nullable=True)
    cpf = Column(String(20), nullable=True)
    rg = Column(String(30), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)

    # Address
    zip_code = Column(String(20), nullable=True)
    address_street = Column(String(255), nullable=True)
    address_number = Column(String(20), nullable=True)
    address_neighborhood = Column(String(255), nullable=True)
    address_city = Column(String(255), nullable=True)
    address_state = Column(String(50), nullable=True)

    # Health
    special_needs = Column(Text, nullable=True)
    medication_use = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    school_class = relationship("SchoolClass", foreign_keys=[class_id])
    course = relationship("Course", foreign_keys=[course_id])
    guardian_links = relationship("StudentGuardian", back_populates="student", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("tenant_id", "registration_code", name=REGISTRATION_CODE_CONSTRAINT),
    )


class Guardian(Base):
    __tablename__ = "guardians"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    relationship_type = Column("relationship", String(50), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    cpf = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    student_links = relationship("StudentGuardian", back_populates="guardian", cascade="all, delete-orphan")


class StudentGuardian(Base):
    __tablename__ = "student_guardians"

    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)
    guardian_id = Column(String(36), ForeignKey("guardians.id", ondelete="CASCADE"), primary_key=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    student = relationship("Student", back_populates="guardian_links")
    guardian = relationship("Guardian", back_populates="student_links")
