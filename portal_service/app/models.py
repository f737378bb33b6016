# portal_service/app/models.py

from datetime import timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Index
from sqlalchemy.orm import relationship
from sqlalchemy.ext.orderinglist import ordering_list

from .database import Base


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    moodle_token = Column(String, nullable=False, default="")
    full_name = Column(String, nullable=False)


class Question(Base):
    __tablename__ = 'questions'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'))
    question_text = Column(String, nullable=False)
    created_date = Column(Date, nullable=False)

    author = relationship("User", lazy="selectin")
    answers = relationship(
        "Answer",
        order_by="Answer.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Answer(Base):
    __tablename__ = 'answers'
    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey('questions.id'), nullable=False)
    position = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey('users.id'))
    answer_text = Column(String, nullable=False)
    created_date = Column(Date, nullable=False)

    author = relationship("User", lazy="selectin")


class Deadline(Base):
    __tablename__ = 'deadlines'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    course_id = Column(Integer, nullable=False)
    course_name = Column(String)
    assignment_name = Column(String, nullable=False)
    # Naive UTC
    due_date = Column(DateTime, nullable=False)

    # Lookup index for the natural key; not unique, concurrent syncs may duplicate rows.
    __table_args__ = (
        Index('ix_deadlines_natural_key', 'user_id', 'course_id', 'assignment_name'),
    )

    @property
    def due_timestamp_ms(self) -> int:
        return int(self.due_date.replace(tzinfo=timezone.utc).timestamp()) * 1000
