"""
Script validation.

The registry consults a ScriptValidator once at job creation and refuses
to create a job whose script is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def error(cls, reason: str) -> ValidationResult:
        return cls(valid=False, reason=reason)


class ScriptValidator:
    """Checks that a script exists and has an accepted extension.

    Extensions are compared case-insensitively; an empty extension list
    accepts any regular file.
    """

    def __init__(self, extensions: Iterable[str] = (".R",)):
        self.extensions = tuple(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in extensions
        )

    def validate(self, path: str | None) -> ValidationResult:
        if not path:
            return ValidationResult.error("No script path provided")

        script = Path(path).expanduser()
        if not script.is_file():
            return ValidationResult.error(f"File does not exist: {path}")

        if self.extensions and script.suffix.lower() not in self.extensions:
            allowed = ", ".join(self.extensions)
            return ValidationResult.error(f"File is not a supported script (expected {allowed})")

        return ValidationResult.ok()


__all__ = ["ScriptValidator", "ValidationResult"]
