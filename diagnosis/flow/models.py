"""Data models for diagnostic flows, sessions and their outcomes."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, PrivateAttr

AnswerValue = Union[str, list[str]]


class ServiceCategory(str, Enum):
    PLUMBING = "Plumbing"
    ELECTRICAL = "Electrical"
    CARPENTRY = "Carpentry"
    APPLIANCE_REPAIR = "Appliance Repair"
    PAINTING = "Painting"
    CLEANING = "Cleaning"
    GENERAL = "General"


class QuestionType(str, Enum):
    TEXT = "text"
    SINGLE_CHOICE = "single-choice"
    MULTIPLE_CHOICE = "multiple-choice"
    IMAGE = "image"
    YES_NO = "yes-no"
    SCALE = "scale"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class Urgency(str, Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class Difficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class TraversalStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CYCLE_DETECTED = "cycle_detected"
    STOPPED = "stopped"


class RoutingReason(str, Enum):
    NO_DIY_MATCH = "no_diy_match"
    NOT_DIY_CANDIDATE = "not_diy_candidate"
    EMERGENCY_OVERRIDE = "emergency_override"
    CYCLE_DETECTED = "cycle_detected"


# Unspecified severity ranks below LOW so that any tagged branch wins.
_SEVERITY_RANK = {
    None: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.EMERGENCY: 4,
}

_URGENCY_RANK = {
    Urgency.ROUTINE: 0,
    Urgency.URGENT: 1,
    Urgency.EMERGENCY: 2,
}


def severity_rank(severity: Severity | None) -> int:
    return _SEVERITY_RANK[severity]


def urgency_rank(urgency: Urgency) -> int:
    return _URGENCY_RANK[urgency]


class _FlowModel(BaseModel):
    model_config = {"populate_by_name": True}


class Option(_FlowModel):
    """One selectable answer, optionally branching to another question by id."""

    value: str
    label: str = ""
    next_question_id: str | None = Field(alias="nextQuestionId", default=None)
    is_diy_candidate: bool = Field(alias="isDIYCandidate", default=False)
    severity: Severity | None = None


class Question(_FlowModel):
    id: str
    text: str = Field(
        default="",
        validation_alias=AliasChoices("text", "question"),
        serialization_alias="text",
    )
    type: QuestionType = QuestionType.SINGLE_CHOICE
    required: bool = False
    allows_multiple: bool = Field(alias="allowsMultiple", default=False)
    options: list[Option] = []

    @property
    def is_multiple(self) -> bool:
        return self.type == QuestionType.MULTIPLE_CHOICE or self.allows_multiple

    def option(self, value: str) -> Option | None:
        for opt in self.options:
            if opt.value == value:
                return opt
        return None

    def option_values(self) -> list[str]:
        return [opt.value for opt in self.options]


class DIYSolution(_FlowModel):
    """A self-service fix, eligible when every condition entry matches the answers."""

    condition: dict[str, AnswerValue] = {}
    title: str
    description: str = ""
    steps: list[str] = []
    tools: list[str] = []
    materials: list[str] = []
    estimated_time: str = Field(alias="estimatedTime", default="")
    difficulty: Difficulty | None = None
    safety_warnings: list[str] = Field(alias="safetyWarnings", default=[])


class TechnicianPreparation(_FlowModel):
    likely_causes: list[str] = Field(alias="likelyCauses", default=[])
    tools_needed: list[str] = Field(alias="toolsNeeded", default=[])
    common_parts: list[str] = Field(alias="commonParts", default=[])
    estimated_job_duration: str = Field(alias="estimatedJobDuration", default="")
    complexity: Complexity | None = None


class UrgencyIndicator(_FlowModel):
    question_id: str = Field(alias="questionId")
    answer_value: str = Field(alias="answerValue")
    urgency: Urgency


class QuestionTree(_FlowModel):
    """An authored diagnostic flow for one service-category problem.

    Questions are addressed by id through a lookup table built once at
    construction; branch pointers between questions are plain ids.
    """

    service_category: ServiceCategory = Field(alias="serviceCategory")
    problem_name: str = Field(alias="problemName")
    questions: list[Question] = []
    diy_solutions: list[DIYSolution] = Field(alias="diySolutions", default=[])
    technician_preparation: TechnicianPreparation = Field(
        alias="technicianPreparation", default_factory=TechnicianPreparation
    )
    urgency_indicators: list[UrgencyIndicator] = Field(alias="urgencyIndicators", default=[])
    is_active: bool = Field(alias="isActive", default=True)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    _index: dict[str, int] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._index = {}
        for i, q in enumerate(self.questions):
            # first declaration wins; duplicates are reported by validation
            self._index.setdefault(q.id, i)

    def has_question(self, question_id: str) -> bool:
        return question_id in self._index

    def question(self, question_id: str) -> Question | None:
        idx = self._index.get(question_id)
        return self.questions[idx] if idx is not None else None

    @property
    def key(self) -> tuple[str, str]:
        return self.service_category.value, self.problem_name.casefold()


class Session(_FlowModel):
    """Caller-owned state of one diagnostic interaction."""

    answers: dict[str, AnswerValue] = {}
    current_question_id: str | None = Field(alias="currentQuestionId", default=None)
    visited_ids: list[str] = Field(alias="visitedIds", default=[])
    status: TraversalStatus = TraversalStatus.IN_PROGRESS

    @property
    def ended(self) -> bool:
        return self.status != TraversalStatus.IN_PROGRESS

    @property
    def cycle_detected(self) -> bool:
        return self.status == TraversalStatus.CYCLE_DETECTED


class DIYResult(_FlowModel):
    kind: Literal["diy"] = "diy"
    solution: DIYSolution
    matched_solutions: int = Field(alias="matchedSolutions", default=1)
    urgency: Urgency = Urgency.ROUTINE
    ended_by: TraversalStatus = Field(alias="endedBy")


class TechnicianResult(_FlowModel):
    kind: Literal["technician"] = "technician"
    urgency: Urgency
    reason: RoutingReason
    technician_preparation: TechnicianPreparation = Field(alias="technicianPreparation")
    matched_indicators: list[UrgencyIndicator] = Field(alias="matchedIndicators", default=[])
    ended_by: TraversalStatus = Field(alias="endedBy")


DiagnosticResult = Annotated[Union[DIYResult, TechnicianResult], Field(discriminator="kind")]
