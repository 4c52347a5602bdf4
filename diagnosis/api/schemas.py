"""Request and response bodies for the diagnostics API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from diagnosis.flow.models import (
    AnswerValue,
    Question,
    QuestionTree,
    ServiceCategory,
    TraversalStatus,
)
from diagnosis.sessions.store import SessionRecord


class _ApiModel(BaseModel):
    model_config = {"populate_by_name": True}


class StartSessionRequest(_ApiModel):
    service_category: ServiceCategory = Field(alias="serviceCategory")
    problem_name: str = Field(alias="problemName", min_length=1)


class AnswerRequest(_ApiModel):
    question_id: str = Field(alias="questionId", min_length=1)
    value: AnswerValue


class FlowSummary(_ApiModel):
    service_category: ServiceCategory = Field(alias="serviceCategory")
    problem_name: str = Field(alias="problemName")
    question_count: int = Field(alias="questionCount")
    is_active: bool = Field(alias="isActive")

    @classmethod
    def from_tree(cls, tree: QuestionTree) -> FlowSummary:
        return cls(
            service_category=tree.service_category,
            problem_name=tree.problem_name,
            question_count=len(tree.questions),
            is_active=tree.is_active,
        )


class SessionView(_ApiModel):
    """What the client sees of a session: the pending question, if any."""

    session_id: str = Field(alias="sessionId")
    service_category: ServiceCategory = Field(alias="serviceCategory")
    problem_name: str = Field(alias="problemName")
    status: TraversalStatus
    current_question: Question | None = Field(alias="currentQuestion", default=None)
    answers: dict[str, AnswerValue] = {}
    visited_ids: list[str] = Field(alias="visitedIds", default=[])
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_record(cls, record: SessionRecord, current_question: Question | None) -> SessionView:
        return cls(
            session_id=record.id,
            service_category=record.service_category,
            problem_name=record.problem_name,
            status=record.session.status,
            current_question=current_question,
            answers=record.session.answers,
            visited_ids=record.session.visited_ids,
            updated_at=record.updated_at,
        )
