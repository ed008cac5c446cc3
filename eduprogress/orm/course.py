"""
eduprogress/orm/course.py
Course and the lectures it is made of
"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from eduprogress.orm.base import BaseModel


class Course(BaseModel):
    __tablename__ = "courses"

    course_name = Column(String(255), nullable=False)
    course_detail = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Course(id={self.id}, name='{self.course_name}')>"

    def to_dict(self):
        return {
            "id": self.id,
            "course_name": self.course_name,
            "course_detail": self.course_detail,
        }


class CourseLecture(BaseModel):
    """Placement of a lecture inside a course. A lecture may sit in many courses."""
    __tablename__ = "course_lectures"

    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    lecture_id = Column(
        Integer,
        ForeignKey("lectures.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    __table_args__ = (
        UniqueConstraint("course_id", "lecture_id", name="uq_course_lecture"),
    )
