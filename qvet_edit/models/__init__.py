"""Domain models for the QVET change application tool."""

from .change_record import ChangeRecord
from .change_result import ChangeResult, ChangeStatus
from .entity_state import EntityState
from .error_record import ErrorRecord
from .field_descriptor import FieldDescriptor, FieldType, GridAddress
from .process_report import Breakdown, DiffDiagnostics, ProcessReport

__all__ = [
    # Registry
    "FieldDescriptor",
    "FieldType",
    "GridAddress",
    # Diff / apply
    "ChangeRecord",
    "ChangeResult",
    "ChangeStatus",
    "EntityState",
    # Reporting
    "Breakdown",
    "DiffDiagnostics",
    "ErrorRecord",
    "ProcessReport",
]
