from __future__ import annotations

import logging

from ..editors.base import FieldEditor
from ..logging.error_log import (
    CLOSE_FAILED,
    ENTITY_NOT_FOUND,
    FIELD_MUTATION_FAILED,
    SAVE_FAILED,
    SECTION_NOT_FOUND,
    VERIFY_FAILED,
    ErrorLogBuffer,
)
from ..models.change_record import ChangeRecord
from ..models.change_result import ChangeResult, ChangeStatus
from ..models.entity_state import EntityState
from ..models.error_record import ENTITY_FIELD, ErrorRecord
from ..models.field_descriptor import FieldType
from ..surface.base import EntitySurface
from .planner import EntityPlan, SectionPlan
from .progress import SectionProgressIndicator

"""Entity session controller.

Drives one article through open -> (section -> fields)* -> save -> close.
An article is released (closed) whenever it was opened, whatever happens in
between; failures below the entity level are recorded, never raised.
"""

__all__ = [
    "EntitySessionController",
]

logger = logging.getLogger(__name__)


class EntitySessionController:
    def __init__(
        self,
        surface: EntitySurface,
        editors: dict[FieldType, FieldEditor],
        *,
        error_log: ErrorLogBuffer | None = None,
        source_file: str = "",
    ) -> None:
        self.surface = surface
        self.editors = editors
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()
        self.source_file = source_file
        self.transitions: list[tuple[int, EntityState]] = []
        self.save_failures: list[int] = []
        self._state = EntityState.CLOSED

    @property
    def state(self) -> EntityState:
        return self._state

    def _enter(self, entity_id: int, state: EntityState) -> None:
        self._state = state
        self.transitions.append((entity_id, state))

    def _record(self, entity_id: int, field: str, error_type: str, message: str) -> None:
        self.error_log.add(self.source_file, entity_id, field, error_type, message)

    def process_entity(self, plan: EntityPlan) -> list[ChangeResult]:
        """Apply every change of ``plan`` inside one open/save/close session.

        Returns:
            One ChangeResult per change of the plan, in plan order
        """
        entity_id = plan.entity_id
        logger.info(f"entity {entity_id}: {plan.change_count} change(s) in {len(plan.sections)} section(s)")

        self._enter(entity_id, EntityState.OPENING)
        try:
            opened = bool(self.surface.open_entity(entity_id))
            open_error = "entity not found"
        except Exception as e:
            opened = False
            open_error = f"entity not found: {e}"
        if not opened:
            self._enter(entity_id, EntityState.OPEN_FAILED)
            logger.error(f"❌ entity {entity_id}: {open_error}")
            self._record(entity_id, ENTITY_FIELD, ENTITY_NOT_FOUND, open_error)
            return [ChangeResult.from_change(c, ChangeStatus.ERROR, error=open_error) for c in plan.changes]

        self._enter(entity_id, EntityState.OPEN)
        results: list[ChangeResult] = []
        try:
            indicator = SectionProgressIndicator(entity_id, len(plan.sections))
            for section in plan.sections:
                indicator.start_section(section.section)
                section_results = self._process_section(entity_id, section)
                indicator.finish_section(
                    success=all(r.status is ChangeStatus.SUCCESS for r in section_results),
                    changes=len(section_results),
                )
                results.extend(section_results)
            self._save(entity_id)
        finally:
            self._close(entity_id)
        return results

    def _process_section(self, entity_id: int, section: SectionPlan) -> list[ChangeResult]:
        try:
            selected = bool(self.surface.select_section(section.section))
        except Exception as e:
            logger.debug(f"select_section({section.section}) raised: {e}")
            selected = False
        if not selected:
            message = f"section not found: {section.section}"
            logger.error(f"❌ entity {entity_id}: {message}")
            self._record(entity_id, ErrorRecord.section_field(section.section), SECTION_NOT_FOUND, message)
            return [ChangeResult.from_change(c, ChangeStatus.ERROR, error=message) for c in section.changes]

        self._enter(entity_id, EntityState.SECTION_SELECTED)
        logger.info(f"  section: {section.section}")
        return [self._apply_change(c) for c in section.changes]

    def _apply_change(self, change: ChangeRecord) -> ChangeResult:
        editor = self.editors.get(change.field_type)
        try:
            if editor is None:
                raise LookupError(f"no editor for field type {change.field_type.value}")
            outcome = editor.apply(change)
            status, actual, error = outcome.status, outcome.actual_value, outcome.error
        except Exception as e:
            status, actual, error = ChangeStatus.ERROR, None, f"{type(e).__name__}: {e}"

        result = ChangeResult.from_change(change, status, actual_value=actual, error=error)
        if status is ChangeStatus.SUCCESS:
            logger.info(f'    ✅ {change.column}: "{change.old_value}" -> "{change.new_value}"')
        else:
            logger.error(f"    ❌ {change.column}: {error}")
            error_type = VERIFY_FAILED if status is ChangeStatus.VERIFY_FAILED else FIELD_MUTATION_FAILED
            self._record(change.entity_id, change.column, error_type, error or status.value)
        return result

    def _save(self, entity_id: int) -> None:
        self._enter(entity_id, EntityState.SAVING)
        try:
            saved = bool(self.surface.save())
            message = "save control not found"
        except Exception as e:
            saved = False
            message = f"save failed: {e}"
        if saved:
            logger.info(f"  entity {entity_id} saved")
            return
        logger.error(f"❌ entity {entity_id}: {message}")
        self.save_failures.append(entity_id)
        self._record(entity_id, ENTITY_FIELD, SAVE_FAILED, message)

    def _close(self, entity_id: int) -> None:
        try:
            self.surface.close_entity()
        except Exception as e:
            logger.warning(f"entity {entity_id}: close failed: {e}")
            self._record(entity_id, ENTITY_FIELD, CLOSE_FAILED, str(e))
        self._enter(entity_id, EntityState.CLOSED)
