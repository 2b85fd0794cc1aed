from .reader import HeaderMismatchError, MissingSheetError, SnapshotTable, WorkbookError, read_snapshot_pair

__all__ = [
    "HeaderMismatchError",
    "MissingSheetError",
    "SnapshotTable",
    "WorkbookError",
    "read_snapshot_pair",
]
