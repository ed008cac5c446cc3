"""
eduprogress/orm/school.py
School tenant and its student enrolments
"""
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from eduprogress.orm.base import BaseModel


class School(BaseModel):
    __tablename__ = "schools"

    school_name = Column(String(250), nullable=False)
    school_email = Column(String(320), nullable=False)
    domain = Column(
        String(200),
        nullable=False,
        unique=True,
        comment="Tenant domain, resolved outside this service"
    )

    def __repr__(self):
        return f"<School(id={self.id}, name='{self.school_name}')>"

    def to_dict(self):
        return {
            "id": self.id,
            "school_name": self.school_name,
            "school_email": self.school_email,
            "domain": self.domain,
        }


class SchoolStudent(BaseModel):
    """Enrolment of a student in a school."""
    __tablename__ = "school_students"

    school_id = Column(
        Integer,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    __table_args__ = (
        UniqueConstraint("school_id", "student_id", name="uq_school_student"),
    )
