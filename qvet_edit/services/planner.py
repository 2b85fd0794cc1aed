from __future__ import annotations

from dataclasses import dataclass

from ..models.change_record import ChangeRecord

"""Change grouping & ordering planner.

Two-level grouping so each article is opened once and each tab is visited
once: entity (first-seen order) -> section (first-seen order). Inside a
section a cascading select is moved after its parent when both changed.
"""

__all__ = [
    "SectionPlan",
    "EntityPlan",
    "plan_changes",
    "order_cascades",
]


@dataclass(frozen=True)
class SectionPlan:
    section: str
    changes: list[ChangeRecord]


@dataclass(frozen=True)
class EntityPlan:
    entity_id: int
    sections: list[SectionPlan]

    @property
    def change_count(self) -> int:
        return sum(len(s.changes) for s in self.sections)

    @property
    def changes(self) -> list[ChangeRecord]:
        return [c for s in self.sections for c in s.changes]


def order_cascades(changes: list[ChangeRecord]) -> list[ChangeRecord]:
    """Stable reorder so a parent select always precedes its dependents.

    Only changes present in ``changes`` matter; unrelated changes keep their
    relative order.
    """
    ordered: list[ChangeRecord] = []
    placed: set[int] = set()
    present = {c.descriptor.field for c in changes}

    def place(i: int, visiting: set[int]) -> None:
        if i in placed or i in visiting:
            return
        visiting.add(i)
        parent = changes[i].descriptor.cascade_from
        if parent is not None and parent in present:
            for j, other in enumerate(changes):
                if other.descriptor.field == parent:
                    place(j, visiting)
        placed.add(i)
        ordered.append(changes[i])

    for i in range(len(changes)):
        place(i, set())
    return ordered


def plan_changes(changes: list[ChangeRecord]) -> list[EntityPlan]:
    by_entity: dict[int, dict[str, list[ChangeRecord]]] = {}
    for change in changes:
        sections = by_entity.setdefault(change.entity_id, {})
        sections.setdefault(change.section, []).append(change)

    return [
        EntityPlan(
            entity_id=entity_id,
            sections=[SectionPlan(section=name, changes=order_cascades(items)) for name, items in sections.items()],
        )
        for entity_id, sections in by_entity.items()
    ]
