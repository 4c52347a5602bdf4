"""Diagnostic session endpoints — thin HTTP wrapper around the engine."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from opentelemetry import trace

from diagnosis.api.schemas import AnswerRequest, FlowSummary, SessionView, StartSessionRequest
from diagnosis.catalog.store import FlowCatalog
from diagnosis.flow.engine import DiagnosticEngine
from diagnosis.flow.models import DiagnosticResult, ServiceCategory
from diagnosis.sessions.store import SessionRecord, SessionStore
from diagnosis.telemetry.metrics import (
    answers_recorded,
    cycles_detected,
    outcomes,
    sessions_started,
)

router = APIRouter(tags=["diagnostics"])
logger = logging.getLogger("diagnosis.api")
tracer = trace.get_tracer(__name__)


def _catalog(request: Request) -> FlowCatalog:
    return request.app.state.catalog


def _sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def _engine(request: Request) -> DiagnosticEngine:
    return request.app.state.engine


def _view(request: Request, record: SessionRecord) -> SessionView:
    tree = _catalog(request).get(record.service_category, record.problem_name)
    current = None
    if record.session.current_question_id is not None:
        current = tree.question(record.session.current_question_id)
    return SessionView.from_record(record, current)


@router.get("/flows", response_model=list[FlowSummary])
async def list_flows(request: Request, category: ServiceCategory | None = None, q: str = ""):
    catalog = _catalog(request)
    flows = catalog.search(q, category) if q else catalog.list_flows(category)
    return [FlowSummary.from_tree(t) for t in flows]


@router.post("/sessions", response_model=SessionView, status_code=201)
async def start_session(request: Request, body: StartSessionRequest):
    tree = _catalog(request).get(body.service_category, body.problem_name)
    with tracer.start_as_current_span("diagnostic-start") as span:
        span.set_attribute("diagnostic.category", tree.service_category.value)
        span.set_attribute("diagnostic.problem", tree.problem_name)
        session = _engine(request).new_session(tree)

    store = _sessions(request)
    record = store.create(tree.service_category, tree.problem_name, session)
    sessions_started.labels(service_category=tree.service_category.value).inc()
    return _view(request, record)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(request: Request, session_id: str):
    return _view(request, _sessions(request).get(session_id))


@router.post("/sessions/{session_id}/answers", response_model=SessionView)
async def submit_answer(request: Request, session_id: str, body: AnswerRequest):
    store = _sessions(request)
    record = store.get(session_id)
    tree = _catalog(request).get(record.service_category, record.problem_name)

    with tracer.start_as_current_span("diagnostic-answer") as span:
        span.set_attribute("diagnostic.session_id", session_id)
        span.set_attribute("diagnostic.question_id", body.question_id)
        _engine(request).answer(tree, record.session, body.question_id, body.value)
        span.set_attribute("diagnostic.status", record.session.status.value)

    answers_recorded.inc()
    if record.session.cycle_detected:
        cycles_detected.inc()
    store.touch(record)
    logger.info(
        "Session %s answered %s -> %s",
        session_id,
        body.question_id,
        record.session.current_question_id or record.session.status.value,
    )
    return _view(request, record)


@router.post("/sessions/{session_id}/stop", response_model=SessionView)
async def stop_session(request: Request, session_id: str):
    store = _sessions(request)
    record = store.get(session_id)
    _engine(request).stop(record.session)
    store.touch(record)
    return _view(request, record)


@router.get("/sessions/{session_id}/result", response_model=DiagnosticResult)
async def session_result(request: Request, session_id: str):
    record = _sessions(request).get(session_id)
    tree = _catalog(request).get(record.service_category, record.problem_name)

    with tracer.start_as_current_span("diagnostic-resolve") as span:
        span.set_attribute("diagnostic.session_id", session_id)
        result = _engine(request).resolve(tree, record.session)
        span.set_attribute("diagnostic.outcome", result.kind)
        span.set_attribute("diagnostic.urgency", result.urgency.value)

    outcomes.labels(kind=result.kind, urgency=result.urgency.value).inc()
    logger.info("Session %s resolved: %s (urgency=%s)", session_id, result.kind, result.urgency.value)
    return result


@router.delete("/sessions/{session_id}", status_code=204)
async def end_session(request: Request, session_id: str):
    store = _sessions(request)
    store.get(session_id)
    store.discard(session_id)
