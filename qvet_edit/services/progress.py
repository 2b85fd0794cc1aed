from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

- one tqdm bar over the articles of a run, disabled when stdout is not a TTY
  so CI logs stay free of control sequences
- per-section markers printed inline while an article is open
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "SectionProgressIndicator",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress bar over entities (articles)."""

    def __init__(self, total_entities: int, *, description: str = "Applying changes") -> None:
        self.total_entities = total_entities
        self.description = description
        self.current_entity = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_entities,
                desc=description,
                unit="article",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_entity(self, entity_id: int) -> None:
        self.current_entity += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({entity_id})")

    def finish_entity(self, success: bool = True) -> None:
        """Advance the bar by one article.

        Args:
            success: whether every change of the article succeeded
        """
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class SectionProgressIndicator:
    """Inline per-section markers for the article being edited.

    Sections are visited quickly, so a plain line per section is enough.
    """

    def __init__(self, entity_id: int, total_sections: int) -> None:
        self.entity_id = entity_id
        self.total_sections = total_sections
        self.current_section = 0
        self.enabled = is_tty_enabled()

    def start_section(self, section: str) -> None:
        self.current_section += 1
        if self.enabled:
            print(f"  Section {self.current_section}/{self.total_sections}: {section}", end="", flush=True)

    def finish_section(self, success: bool = True, changes: int = 0) -> None:
        if self.enabled:
            status = "✓" if success else "✗"
            if changes > 0:
                print(f" - {changes} changes {status}")
            else:
                print(f" {status}")
