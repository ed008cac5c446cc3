"""
eduprogress/orm/student.py
Student - the learner whose progress is tracked
"""
from enum import Enum
from sqlalchemy import Column, Integer, String, Enum as SQLEnum
from eduprogress.orm.base import BaseModel


class StudentRole(str, Enum):
    """
    How the student is enrolled.

    - INDIVIDUAL: signed up on their own
    - SCHOOL: enrolled through a school tenant
    """
    INDIVIDUAL = "individual"
    SCHOOL = "school"


class Student(BaseModel):
    __tablename__ = "students"

    name = Column(String(255), nullable=False)

    level = Column(
        Integer,
        nullable=False,
        default=1,
        comment="Curriculum level the student is placed at"
    )

    role = Column(
        SQLEnum(StudentRole, name="student_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=StudentRole.INDIVIDUAL
    )

    class_name = Column(
        String(50),
        nullable=True,
        comment="Student class/grade label"
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', level={self.level})>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "role": self.role.value if self.role else None,
            "class_name": self.class_name,
        }
