"""
eduprogress/orm/lecture.py
Lecture - the unit that groups assignments for cascade evaluation
"""
from sqlalchemy import Column, String, Text
from eduprogress.orm.base import BaseModel


class Lecture(BaseModel):
    __tablename__ = "lectures"

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    url = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Lecture(id={self.id}, title='{self.title}')>"

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
        }
