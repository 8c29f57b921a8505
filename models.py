from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, Integer, String, Text, UniqueConstraint

from db import Base


QUESTION_TYPE_MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
QUESTION_TYPE_OPINION_MULTIPLE = "OPINION_MULTIPLE"


class Test(Base):
    __tablename__ = "tests"

    testId = Column(String, primary_key=True)
    title = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    createdAt = Column(Text, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class Stage(Base):
    __tablename__ = "stages"

    stageId = Column(String, primary_key=True)
    title = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    questionType = Column(String, nullable=False, default=QUESTION_TYPE_MULTIPLE_CHOICE)
    # Legacy global position, only consulted by the test-agnostic ordinal fallback.
    order = Column(Integer, nullable=True, index=True)
    createdAt = Column(Text, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class TestStage(Base):
    __tablename__ = "test_stages"
    __table_args__ = (
        UniqueConstraint("testId", "order", name="uq_test_stages_test_order"),
        UniqueConstraint("testId", "stageId", name="uq_test_stages_test_stage"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    testId = Column(String, nullable=False, index=True)
    stageId = Column(String, nullable=False, index=True)
    # Dense, 0-based within one test.
    order = Column(Integer, nullable=False, default=0)
    updatedAt = Column(Text, nullable=False, default="")


class Question(Base):
    __tablename__ = "questions"

    questionId = Column(String, primary_key=True)
    stageId = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)
    createdAt = Column(Text, nullable=False, default="")


class Option(Base):
    __tablename__ = "options"

    optionId = Column(String, primary_key=True)
    questionId = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)
    categoryId = Column(String, nullable=True)
    categoryName = Column(Text, nullable=True)
    isCorrect = Column(Boolean, nullable=False, default=False)


class QuestionCategory(Base):
    __tablename__ = "question_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    questionId = Column(String, nullable=False, index=True)
    categoryId = Column(String, nullable=False, default="")
    name = Column(Text, nullable=False, default="")


class Candidate(Base):
    __tablename__ = "candidates"

    candidateId = Column(String, primary_key=True)
    name = Column(Text, nullable=False, default="")
    inviteCode = Column(String, nullable=True, unique=True)
    testId = Column(String, nullable=True, index=True)
    processId = Column(String, nullable=True, index=True)
    createdAt = Column(Text, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class SelectionProcess(Base):
    __tablename__ = "selection_processes"

    processId = Column(String, primary_key=True)
    name = Column(Text, nullable=False, default="")
    createdAt = Column(Text, nullable=False, default="")


class ProcessStage(Base):
    __tablename__ = "process_stages"

    processStageId = Column(String, primary_key=True)
    processId = Column(String, nullable=False, index=True)
    title = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)
    testId = Column(String, nullable=True)


class PersonalityTrait(Base):
    __tablename__ = "personality_traits"
    __table_args__ = (
        UniqueConstraint("processStageId", "groupId", "order", name="uq_personality_traits_group_order"),
    )

    traitId = Column(String, primary_key=True)
    processStageId = Column(String, nullable=False, index=True)
    groupId = Column(String, nullable=False, default="")
    groupName = Column(Text, nullable=False, default="")
    traitName = Column(Text, nullable=False, default="")
    weight = Column(Float, nullable=False, default=0.0)
    order = Column(Integer, nullable=False, default=1)
    updatedAt = Column(Text, nullable=False, default="")


class AuditLog(Base):
    __tablename__ = "audit_log"

    logId = Column(String, primary_key=True)
    entityType = Column(String, nullable=False, default="", index=True)
    entityId = Column(String, nullable=False, default="", index=True)
    action = Column(String, nullable=False, default="", index=True)
    fromState = Column(String, nullable=False, default="")
    toState = Column(String, nullable=False, default="")
    stageTag = Column(String, nullable=False, default="", index=True)
    remark = Column(Text, nullable=False, default="")
    actor = Column(String, nullable=False, default="", index=True)
    at = Column(Text, nullable=False, default="", index=True)
    metaJson = Column(Text, nullable=False, default="")
