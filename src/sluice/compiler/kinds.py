"""Source kinds the pipeline knows how to compile."""

from __future__ import annotations

from enum import Enum


class FileKind(Enum):
    JSON = "json"
    TYPESCRIPT = "typescript"
    COMPONENT = "component"
    STYLESHEET = "stylesheet"

    @classmethod
    def from_path(cls, path: str) -> FileKind | None:
        """The kind of source at *path*, or ``None`` if it is not compilable.

        Declarations (``.d.ts``) are never compiled. Any path ending in
        ``css`` counts as a stylesheet.
        """
        if path.endswith(".json"):
            return cls.JSON
        if path.endswith(".d.ts"):
            return None
        if path.endswith(".ts"):
            return cls.TYPESCRIPT
        if path.endswith(".vue"):
            return cls.COMPONENT
        if path.endswith("css"):
            return cls.STYLESHEET
        return None
