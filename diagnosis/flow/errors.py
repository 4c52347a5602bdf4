"""Error taxonomy for diagnostic flow evaluation.

Configuration errors mean the authored flow is broken: they are logged for
the flow's administrator and the interaction is aborted. Input errors mean the
caller sent an answer the current question cannot accept; the same question
can be asked again.
"""

from __future__ import annotations


class DiagnosticError(Exception):
    """Base class for every error raised by the diagnostics package."""


class FlowConfigurationError(DiagnosticError):
    """The flow definition itself is malformed."""


class EmptyTreeError(FlowConfigurationError):
    def __init__(self, service_category: str, problem_name: str) -> None:
        self.service_category = service_category
        self.problem_name = problem_name
        super().__init__(f"Flow {service_category}/{problem_name} has no questions")


class DanglingReferenceError(FlowConfigurationError):
    """A branch or condition names a question id the flow does not contain."""

    def __init__(self, reference: str, source: str) -> None:
        self.reference = reference
        self.source = source
        super().__init__(f"Unknown question id {reference!r} referenced from {source}")


class InvalidAnswerError(DiagnosticError):
    def __init__(self, question_id: str | None, reason: str) -> None:
        self.question_id = question_id
        self.reason = reason
        super().__init__(f"Invalid answer for question {question_id!r}: {reason}")


class FlowNotFoundError(DiagnosticError):
    def __init__(self, service_category: str, problem_name: str) -> None:
        self.service_category = service_category
        self.problem_name = problem_name
        super().__init__(f"No active flow for {service_category}/{problem_name}")


class SessionNotFoundError(DiagnosticError):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} not found or expired")
