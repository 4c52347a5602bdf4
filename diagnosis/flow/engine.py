"""Diagnostic engine — walks a question tree and routes to a DIY fix or a technician."""

from __future__ import annotations

import logging

from diagnosis.flow.errors import DanglingReferenceError, EmptyTreeError, InvalidAnswerError
from diagnosis.flow.models import (
    AnswerValue,
    DIYResult,
    DIYSolution,
    Option,
    Question,
    QuestionTree,
    RoutingReason,
    Session,
    TechnicianResult,
    TraversalStatus,
    Urgency,
    UrgencyIndicator,
    severity_rank,
    urgency_rank,
)

logger = logging.getLogger("diagnosis.engine")


def _as_set(value: AnswerValue) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset((value,))
    return frozenset(value)


def _answer_includes(answer: AnswerValue | None, value: str) -> bool:
    if answer is None:
        return False
    if isinstance(answer, str):
        return answer == value
    return value in answer


class DiagnosticEngine:
    """Stateless evaluator: all interaction state lives in the caller's Session."""

    def start(self, tree: QuestionTree) -> Question:
        """Return the first question of the tree."""
        if not tree.questions:
            raise EmptyTreeError(tree.service_category.value, tree.problem_name)
        return tree.questions[0]

    def new_session(self, tree: QuestionTree) -> Session:
        first = self.start(tree)
        return Session(current_question_id=first.id)

    def answer(
        self,
        tree: QuestionTree,
        session: Session,
        question_id: str,
        value: AnswerValue,
    ) -> Question | None:
        """Record an answer and advance the session.

        Returns the next question, or None when the traversal has ended
        (terminal branch or cycle). The session is only mutated once the
        answer has been accepted and its branch resolved.
        """
        if session.ended:
            raise InvalidAnswerError(question_id, f"session already ended ({session.status.value})")
        if question_id != session.current_question_id:
            raise InvalidAnswerError(
                question_id, f"expected an answer to {session.current_question_id!r}"
            )

        question = tree.question(question_id)
        if question is None:
            raise DanglingReferenceError(question_id, "session.currentQuestionId")

        recorded, chosen = self._accept(question, value)
        next_id = self._branch(chosen)
        if next_id is not None and not tree.has_question(next_id):
            raise DanglingReferenceError(next_id, f"option of question {question_id!r}")

        session.answers[question_id] = recorded
        session.visited_ids.append(question_id)

        if next_id is None:
            session.status = TraversalStatus.COMPLETED
            session.current_question_id = None
            logger.debug("Traversal completed at %s (%d answers)", question_id, len(session.answers))
            return None

        if next_id in session.visited_ids:
            session.status = TraversalStatus.CYCLE_DETECTED
            session.current_question_id = None
            logger.warning(
                "Cycle detected in %s/%s: %s branches back to %s",
                tree.service_category.value,
                tree.problem_name,
                question_id,
                next_id,
            )
            return None

        session.current_question_id = next_id
        return tree.question(next_id)

    def stop(self, session: Session) -> Session:
        """End an in-progress traversal on the caller's request."""
        if not session.ended:
            session.status = TraversalStatus.STOPPED
            session.current_question_id = None
        return session

    def resolve(self, tree: QuestionTree, session: Session) -> DIYResult | TechnicianResult:
        """Produce the outcome for the answers gathered so far. Never mutates the session."""
        matches = self.matching_solutions(tree, session.answers)
        indicators = self.matching_indicators(tree, session.answers)
        urgency = max(
            (ind.urgency for ind in indicators), key=urgency_rank, default=Urgency.ROUTINE
        )

        if session.cycle_detected:
            reason = RoutingReason.CYCLE_DETECTED
        elif not matches:
            reason = RoutingReason.NO_DIY_MATCH
        elif urgency == Urgency.EMERGENCY:
            reason = RoutingReason.EMERGENCY_OVERRIDE
        else:
            # declaration order is the authored priority; later matches never stand in
            if self._all_diy_candidates(tree, matches[0], session.answers):
                return DIYResult(
                    solution=matches[0],
                    matched_solutions=len(matches),
                    urgency=urgency,
                    ended_by=session.status,
                )
            reason = RoutingReason.NOT_DIY_CANDIDATE

        return TechnicianResult(
            urgency=urgency,
            reason=reason,
            technician_preparation=tree.technician_preparation,
            matched_indicators=indicators,
            ended_by=session.status,
        )

    def matching_solutions(
        self, tree: QuestionTree, answers: dict[str, AnswerValue]
    ) -> list[DIYSolution]:
        """All DIY solutions whose condition matches the answers, in declaration order."""
        matches = []
        for i, solution in enumerate(tree.diy_solutions):
            for qid in solution.condition:
                if not tree.has_question(qid):
                    raise DanglingReferenceError(qid, f"condition of diySolutions[{i}]")
            if self._condition_matches(solution.condition, answers):
                matches.append(solution)
        return matches

    def matching_indicators(
        self, tree: QuestionTree, answers: dict[str, AnswerValue]
    ) -> list[UrgencyIndicator]:
        return [
            ind
            for ind in tree.urgency_indicators
            if _answer_includes(answers.get(ind.question_id), ind.answer_value)
        ]

    # ── internals ────────────────────────────────────────────────────

    def _accept(self, question: Question, value: AnswerValue) -> tuple[AnswerValue, list[Option]]:
        """Validate a raw answer; return the value to record and the options it selects."""
        if not question.options:
            if not isinstance(value, str) or not value.strip():
                raise InvalidAnswerError(question.id, "a non-empty text answer is required")
            return value, []

        if question.is_multiple:
            selected = [value] if isinstance(value, str) else value
            if not isinstance(selected, list) or not selected:
                raise InvalidAnswerError(question.id, "select at least one option")
            if len(set(selected)) != len(selected):
                raise InvalidAnswerError(question.id, "duplicate selections")
            unknown = [v for v in selected if question.option(v) is None]
            if unknown:
                raise InvalidAnswerError(question.id, f"unknown option(s) {unknown}")
            chosen = [opt for opt in question.options if opt.value in selected]
            return [opt.value for opt in chosen], chosen

        if not isinstance(value, str):
            raise InvalidAnswerError(question.id, "exactly one option must be selected")
        option = question.option(value)
        if option is None:
            raise InvalidAnswerError(
                question.id, f"{value!r} is not one of {question.option_values()}"
            )
        return value, [option]

    @staticmethod
    def _branch(chosen: list[Option]) -> str | None:
        """Next question id; the most severe branching option wins, first declared on ties."""
        branching = [opt for opt in chosen if opt.next_question_id]
        if not branching:
            return None
        return max(branching, key=lambda opt: severity_rank(opt.severity)).next_question_id

    @staticmethod
    def _condition_matches(condition: dict[str, AnswerValue], answers: dict[str, AnswerValue]) -> bool:
        if not condition:
            # empty conditions are rejected at load time and never match here
            return False
        for qid, expected in condition.items():
            given = answers.get(qid)
            if given is None or _as_set(given) != _as_set(expected):
                return False
        return True

    @staticmethod
    def _all_diy_candidates(
        tree: QuestionTree, solution: DIYSolution, answers: dict[str, AnswerValue]
    ) -> bool:
        for qid in solution.condition:
            question = tree.question(qid)
            if question is None or not question.options:
                continue
            for value in _as_set(answers[qid]):
                option = question.option(value)
                if option is None or not option.is_diy_candidate:
                    return False
        return True
