from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from .database import Base


class IdCounter(Base):
    __tablename__ = "id_counters"

    entity_type = Column(String(50), primary_key=True)
    current_value = Column(Integer, nullable=False, default=0)


class QuestionBank(Base):
    __tablename__ = "question_bank"

    id = Column(String(50), primary_key=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(50), nullable=False, index=True)
    options = Column(JSONB, nullable=True)
    validation_rules = Column(JSONB, nullable=True)
    metadata_json = Column("metadata", JSONB, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class QuestionOptionHistory(Base):
    __tablename__ = "question_option_history"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    question_id = Column(String(50), ForeignKey("question_bank.id", ondelete="CASCADE"), nullable=False)
    option_key = Column(String(100), nullable=False)
    old_label = Column(Text, nullable=True)
    new_label = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    changed_by = Column(String(100), nullable=True)
    change_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_option_history_question_option", "question_id", "option_key"),
        Index("idx_option_history_changed_at", "changed_at"),
    )


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(50), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    questions = Column(JSONB, nullable=False, default=list)
    metadata_json = Column("metadata", JSONB, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String(50), primary_key=True)
    form_id = Column(String(50), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    submission_data = Column(JSONB, nullable=False)
    metadata_json = Column("metadata", JSONB, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
