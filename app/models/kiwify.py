"""
Kiwify purchases and the access they grant.

kiwify_products: de/para between a Kiwify product and an internal course.
kiwify_purchases: one row per Kiwify transaction (transaction_id is the idempotency key).
student_courses: derived access grant, one row per (student_id, course_id).
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class KiwifyProduct(Base):
    __tablename__ = "kiwify_products"

    id = Column(Integer, primary_key=True, index=True)

    # Raw Kiwify id, not a FK: products can be sold before the course exists
    kiwify_product_id = Column(String(255), unique=True, nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course", foreign_keys=[course_id])


class KiwifyPurchase(Base):
    __tablename__ = "kiwify_purchases"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(String(255), unique=True, nullable=False, index=True)
    kiwify_product_id = Column(String(255), nullable=True, index=True)
    buyer_email = Column(String(255), nullable=True, index=True)
    purchase_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(50), nullable=True)  # approved, refunded, canceled...
    amount = Column(Numeric(12, 2), nullable=True)

    # NULL until the buyer is matched to a profile by e-mail
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("Profile", foreign_keys=[user_id])


class StudentCourse(Base):
    __tablename__ = "student_courses"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    access_granted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    student = relationship("Student")
    course = relationship("Course")

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_student_courses_student_course"),
    )
