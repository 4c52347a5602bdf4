"""Static checks for authored flows, run before a flow is served."""

from __future__ import annotations

import logging
from collections import Counter
from enum import Enum

from pydantic import BaseModel

from diagnosis.flow.errors import (
    DanglingReferenceError,
    EmptyTreeError,
    FlowConfigurationError,
)
from diagnosis.flow.models import QuestionTree, QuestionType

logger = logging.getLogger("diagnosis.validation")

_CHOICE_TYPES = {
    QuestionType.SINGLE_CHOICE,
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.YES_NO,
    QuestionType.SCALE,
}


class ProblemCode(str, Enum):
    EMPTY_TREE = "empty_tree"
    DUPLICATE_QUESTION_ID = "duplicate_question_id"
    MISSING_OPTIONS = "missing_options"
    DANGLING_BRANCH = "dangling_branch"
    DANGLING_CONDITION = "dangling_condition"
    UNKNOWN_CONDITION_VALUE = "unknown_condition_value"
    EMPTY_CONDITION = "empty_condition"
    DANGLING_INDICATOR = "dangling_indicator"


class TreeProblem(BaseModel):
    code: ProblemCode
    message: str
    reference: str = ""


def validate_tree(tree: QuestionTree) -> list[TreeProblem]:
    """Collect every configuration problem in a flow (empty list when valid)."""
    problems: list[TreeProblem] = []

    if not tree.questions:
        problems.append(TreeProblem(code=ProblemCode.EMPTY_TREE, message="flow has no questions"))

    for qid, count in Counter(q.id for q in tree.questions).items():
        if count > 1:
            problems.append(TreeProblem(
                code=ProblemCode.DUPLICATE_QUESTION_ID,
                message=f"question id {qid!r} declared {count} times",
                reference=qid,
            ))

    for q in tree.questions:
        if q.type in _CHOICE_TYPES and not q.options:
            problems.append(TreeProblem(
                code=ProblemCode.MISSING_OPTIONS,
                message=f"{q.type.value} question {q.id!r} has no options",
                reference=q.id,
            ))
        for opt in q.options:
            if opt.next_question_id and not tree.has_question(opt.next_question_id):
                problems.append(TreeProblem(
                    code=ProblemCode.DANGLING_BRANCH,
                    message=f"option {opt.value!r} of {q.id!r} branches to unknown {opt.next_question_id!r}",
                    reference=opt.next_question_id,
                ))

    for i, solution in enumerate(tree.diy_solutions):
        if not solution.condition:
            problems.append(TreeProblem(
                code=ProblemCode.EMPTY_CONDITION,
                message=f"diySolutions[{i}] ({solution.title!r}) has an empty condition",
            ))
        for qid, expected in solution.condition.items():
            question = tree.question(qid)
            if question is None:
                problems.append(TreeProblem(
                    code=ProblemCode.DANGLING_CONDITION,
                    message=f"diySolutions[{i}] conditions on unknown question {qid!r}",
                    reference=qid,
                ))
                continue
            if not question.options:
                continue
            values = [expected] if isinstance(expected, str) else expected
            for value in values:
                if question.option(value) is None:
                    problems.append(TreeProblem(
                        code=ProblemCode.UNKNOWN_CONDITION_VALUE,
                        message=f"diySolutions[{i}] expects {value!r} which {qid!r} does not offer",
                        reference=qid,
                    ))

    for ind in tree.urgency_indicators:
        if not tree.has_question(ind.question_id):
            problems.append(TreeProblem(
                code=ProblemCode.DANGLING_INDICATOR,
                message=f"urgency indicator references unknown question {ind.question_id!r}",
                reference=ind.question_id,
            ))

    return problems


def ensure_valid(tree: QuestionTree) -> None:
    """Raise the configuration error matching the first problem found."""
    problems = validate_tree(tree)
    if not problems:
        return

    first = problems[0]
    logger.error(
        "Flow %s/%s failed validation with %d problem(s): %s",
        tree.service_category.value,
        tree.problem_name,
        len(problems),
        "; ".join(p.message for p in problems),
    )
    if first.code == ProblemCode.EMPTY_TREE:
        raise EmptyTreeError(tree.service_category.value, tree.problem_name)
    if first.code in (
        ProblemCode.DANGLING_BRANCH,
        ProblemCode.DANGLING_CONDITION,
        ProblemCode.DANGLING_INDICATOR,
    ):
        raise DanglingReferenceError(first.reference, first.message)
    raise FlowConfigurationError(first.message)
