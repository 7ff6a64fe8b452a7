"""
Models package for the picture quiz backend.
"""
from .base import Base, engine, SessionLocal, create_db_engine
from .models import ExamSessionRecord, QuestionStat, QuestionExplanation

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "create_db_engine",
    "ExamSessionRecord",
    "QuestionStat",
    "QuestionExplanation",
]
