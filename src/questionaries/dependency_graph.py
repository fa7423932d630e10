"""The per-template graph of field dependencies.

Each question depends on at most one other question. Edges are kept flat and indexed by
both endpoints; every traversal is iterative and tracks visited nodes, so a corrupt graph
(a stored cycle, a dangling target) degrades to inactive questions instead of looping.
"""

import typing as t
from collections import defaultdict, deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .conditions import ConditionEvaluator
from .enums import DataType
from .exceptions import AnswerValidationError, UnsupportedOperatorError
from .schema import FieldConditionSchema, FieldDependencySchema, TemplateSchema


@dataclass(frozen=True)
class DependencyEdge:
    """``dependent_id`` is visible only while ``target_id``'s answer satisfies ``condition``."""

    dependent_id: str
    target_id: str
    condition: FieldConditionSchema


@dataclass(frozen=True)
class Activation:
    """The outcome of resolving a graph against an answer set.

    Attributes:
        active: Ids of the questions currently shown.
        diagnostics: Per question explanation of why it could not be evaluated.
    """

    active: frozenset[str]
    diagnostics: Mapping[str, str] = field(default_factory=dict)


class FieldDependencyGraph:
    def __init__(self, data_types: Mapping[str, DataType], edges: Iterable[DependencyEdge]) -> None:
        """Index the questions of a template and their dependency edges."""
        self._data_types: dict[str, DataType] = dict(data_types)
        self._edge_by_dependent: dict[str, DependencyEdge] = {}
        self._dependents_by_target: dict[str, set[str]] = defaultdict(set)
        for edge in edges:
            self._edge_by_dependent[edge.dependent_id] = edge
            self._dependents_by_target[edge.target_id].add(edge.dependent_id)

    @classmethod
    def from_template(cls, template: TemplateSchema) -> t.Self:
        """Build the graph of a template snapshot."""
        data_types: dict[str, DataType] = {}
        edges: list[DependencyEdge] = []
        for topic in template.topics:
            for f in topic.fields:
                data_types[f.question_id] = f.data_type
                if f.dependency is not None:
                    edges.append(
                        DependencyEdge(
                            dependent_id=f.question_id,
                            target_id=f.dependency.dependency_id,
                            condition=f.dependency.condition,
                        )
                    )
        return cls(data_types, edges)

    @property
    def question_ids(self) -> frozenset[str]:
        """Ids of every question in the graph."""
        return frozenset(self._data_types)

    def dependency_of(self, question_id: str) -> DependencyEdge | None:
        """The edge ``question_id`` depends on, if any."""
        return self._edge_by_dependent.get(question_id)

    def direct_dependents_of(self, question_id: str) -> set[str]:
        """Questions whose dependency targets ``question_id``."""
        return set(self._dependents_by_target.get(question_id, ()))

    def dependents_of(self, question_id: str) -> set[str]:
        """Every question whose visibility may change when ``question_id`` changes.

        Transitive: in a chain A -> B -> C, C is a dependent of A, because A flipping B's
        visibility flips C's even though B's stored answer did not change.
        """
        found: set[str] = set()
        queue = deque([question_id])
        while queue:
            current = queue.popleft()
            for dependent in self._dependents_by_target.get(current, ()):
                if dependent not in found and dependent != question_id:
                    found.add(dependent)
                    queue.append(dependent)
        return found

    def would_create_cycle(self, question_id: str, candidate: FieldDependencySchema) -> bool:
        """Whether making ``question_id`` depend on ``candidate`` would close a loop.

        Walks from the candidate target along existing dependencies, looking for
        ``question_id``. The question's current dependency is ignored since the candidate
        replaces it.
        """
        visited: set[str] = set()
        current: str | None = candidate.dependency_id
        while current is not None and current not in visited:
            if current == question_id:
                return True
            visited.add(current)
            edge = self._edge_by_dependent.get(current)
            current = edge.target_id if edge else None
        return False

    def find_cycles(self) -> list[set[str]]:
        """Groups of questions that depend on each other in a loop."""
        cycles: list[set[str]] = []
        seen: set[str] = set()
        for start in self._edge_by_dependent:
            if start in seen:
                continue
            path: list[str] = []
            on_path: set[str] = set()
            current: str | None = start
            while current is not None and current not in seen and current not in on_path:
                path.append(current)
                on_path.add(current)
                edge = self._edge_by_dependent.get(current)
                current = edge.target_id if edge else None
            if current is not None and current in on_path:
                cycles.append(set(path[path.index(current) :]))
            seen.update(path)
        return cycles

    def resolve(
        self,
        answers: Mapping[str, t.Any],
        evaluator: ConditionEvaluator,
        suppressed: Iterable[str] = (),
    ) -> Activation:
        """Decide which questions are active for an answer set.

        A question is active iff it is not suppressed and it either has no dependency, or
        its dependency target is itself active, answered, and satisfies the condition.
        Answers of inactive questions are ignored, so hiding B in A -> B -> C hides C too.

        Args:
            answers: Raw answer values keyed by question id. ``None`` means unanswered.
            evaluator: The condition evaluator.
            suppressed: Questions forced inactive (e.g. those in disabled topics).
        """
        suppressed_ids = set(suppressed)
        active: set[str] = set()
        diagnostics: dict[str, str] = {}
        resolved: set[str] = set()
        queue: deque[str] = deque()

        for question_id in self._data_types:
            if question_id in self._edge_by_dependent:
                continue
            resolved.add(question_id)
            queue.append(question_id)
            if question_id not in suppressed_ids:
                active.add(question_id)

        while queue:
            target_id = queue.popleft()
            for dependent_id in sorted(self._dependents_by_target.get(target_id, ())):
                if dependent_id in resolved or dependent_id not in self._data_types:
                    continue
                resolved.add(dependent_id)
                queue.append(dependent_id)
                if dependent_id in suppressed_ids or target_id not in active:
                    continue
                edge = self._edge_by_dependent[dependent_id]
                try:
                    satisfied = evaluator.is_satisfied(
                        self._data_types[target_id],
                        answers.get(target_id),
                        edge.condition.operator,
                        edge.condition.params,
                    )
                except (UnsupportedOperatorError, AnswerValidationError) as e:
                    diagnostics[dependent_id] = str(e)
                    continue
                if satisfied:
                    active.add(dependent_id)

        unresolved = self._data_types.keys() - resolved
        if unresolved:
            in_cycle: set[str] = set().union(*self.find_cycles())
            for question_id in unresolved:
                edge = self._edge_by_dependent[question_id]
                if question_id in in_cycle:
                    diagnostics[question_id] = "Question is part of a dependency cycle."
                elif edge.target_id not in self._data_types:
                    diagnostics[question_id] = f"Dependency target '{edge.target_id}' is not part of the template."
                else:
                    diagnostics[question_id] = f"Dependency target '{edge.target_id}' could not be evaluated."

        return Activation(active=frozenset(active), diagnostics=diagnostics)

    def active_questions(self, answers: Mapping[str, t.Any], evaluator: ConditionEvaluator) -> set[str]:
        """Ids of the questions active for an answer set."""
        return set(self.resolve(answers, evaluator).active)
