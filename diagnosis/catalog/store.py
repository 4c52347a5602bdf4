"""Flow catalog — read-only registry of diagnostic flows loaded from JSON documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from diagnosis.config import settings
from diagnosis.flow.errors import FlowConfigurationError, FlowNotFoundError
from diagnosis.flow.models import QuestionTree, ServiceCategory
from diagnosis.flow.validation import ensure_valid, validate_tree

logger = logging.getLogger("diagnosis.catalog")


class FlowCatalog:
    """Flows keyed by (service category, problem name), problem names case-insensitive."""

    def __init__(self, strict: bool | None = None) -> None:
        self._strict = settings.strict_flow_validation if strict is None else strict
        self._flows: dict[tuple[str, str], QuestionTree] = {}

    def __len__(self) -> int:
        return len(self._flows)

    def register(self, tree: QuestionTree) -> bool:
        """Add or replace a flow. Returns False when strict validation rejects it."""
        if self._strict:
            try:
                ensure_valid(tree)
            except FlowConfigurationError as exc:
                logger.error(
                    "Rejected flow %s/%s: %s", tree.service_category.value, tree.problem_name, exc
                )
                return False
        else:
            for p in validate_tree(tree):
                logger.warning(
                    "Flow %s/%s: %s (%s)",
                    tree.service_category.value, tree.problem_name, p.message, p.code.value,
                )

        if tree.key in self._flows:
            logger.info("Replacing flow %s/%s", tree.service_category.value, tree.problem_name)
        self._flows[tree.key] = tree
        return True

    def load_directory(self, directory: str | None = None) -> int:
        """Load every *.json file in the directory; each holds one flow or a list of flows."""
        flows_dir = Path(directory or settings.flows_dir)
        if not flows_dir.exists():
            logger.warning("Flows directory does not exist: %s", flows_dir)
            return 0

        loaded = 0
        for path in sorted(flows_dir.glob("*.json")):
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.exception("Failed to read flow file: %s", path)
                continue

            documents = raw if isinstance(raw, list) else [raw]
            for i, doc in enumerate(documents):
                try:
                    tree = QuestionTree.model_validate(doc)
                except ValidationError as exc:
                    logger.error("Invalid flow document %s[%d]: %s", path.name, i, exc)
                    continue
                if self.register(tree):
                    loaded += 1

        logger.info("Loaded %d flows from %s", loaded, flows_dir)
        return loaded

    def get(self, service_category: ServiceCategory | str, problem_name: str) -> QuestionTree:
        """Return the active flow for a problem, or raise FlowNotFoundError."""
        category = ServiceCategory(service_category).value
        tree = self._flows.get((category, problem_name.casefold()))
        if tree is None or not tree.is_active:
            raise FlowNotFoundError(category, problem_name)
        return tree

    def list_flows(
        self,
        service_category: ServiceCategory | str | None = None,
        include_inactive: bool = False,
    ) -> list[QuestionTree]:
        category = ServiceCategory(service_category).value if service_category else None
        flows = [
            t
            for t in self._flows.values()
            if (category is None or t.service_category.value == category)
            and (include_inactive or t.is_active)
        ]
        return sorted(flows, key=lambda t: t.key)

    def search(
        self,
        query: str,
        service_category: ServiceCategory | str | None = None,
    ) -> list[QuestionTree]:
        """Active flows whose problem name contains every term of the query."""
        terms = query.casefold().split()
        return [
            t
            for t in self.list_flows(service_category)
            if all(term in t.problem_name.casefold() for term in terms)
        ]

    def categories(self) -> list[ServiceCategory]:
        present = {t.service_category for t in self._flows.values() if t.is_active}
        return [c for c in ServiceCategory if c in present]
