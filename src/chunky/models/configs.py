from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BUDGET = 1000
DEFAULT_OVERHEAD = 0.05
DEFAULT_TOKENIZER = "o200k_base"
DEFAULT_OUT_DIR = "."


class HeaderField(BaseModel):
    """One front-matter field rendered into a key-value chunk header."""

    path: str
    label: str = ""
    required: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("path")
    @classmethod
    def _require_path(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("header field path cannot be empty")
        return value

    @property
    def display_label(self) -> str:
        return self.label.strip() or self.path

    @classmethod
    def parse(cls, spec: str) -> "HeaderField":
        """Parse ``path``, ``path:Label``, ``path!`` or ``path!:Label``."""

        if not spec:
            raise ValueError("empty header field specification")

        required = False
        if spec.endswith("!"):
            required = True
            spec = spec[:-1]

        if "!:" in spec:
            path, label = spec.split("!:", 1)
            return cls(path=path, label=label.strip(), required=True)

        path, _, label = spec.partition(":")
        path = path.strip()
        if not path:
            raise ValueError("empty path in header field specification")
        return cls(path=path, label=label.strip() or path, required=required)

    def __str__(self) -> str:
        marker = "!" if self.required else ""
        if self.label and self.label != self.path:
            return f"{self.path}{marker}:{self.label}"
        return f"{self.path}{marker}"


class ChunkyOptions(BaseModel):
    """Options shared by the ``.chunkyrc`` file and the command line."""

    out_dir: str = Field(default=DEFAULT_OUT_DIR, alias="outDir")
    budget: int = DEFAULT_BUDGET
    overhead: float = DEFAULT_OVERHEAD
    strict: bool = False
    tokenizer: str = DEFAULT_TOKENIZER
    headers: List[HeaderField] = Field(default_factory=list)
    dry_run: bool = Field(default=False, alias="dryRun")
    verbose: bool = False
    files: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("headers", mode="before")
    @classmethod
    def _parse_header_specs(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [HeaderField.parse(item) if isinstance(item, str) else item for item in value]
        return value

    def validate_for_run(self) -> None:
        if self.budget < 100:
            raise ValueError(f"budget must be at least 100, got {self.budget}")
        if not 0.01 <= self.overhead <= 0.5:
            raise ValueError(f"overhead must be in range [0.01, 0.5], got {self.overhead:.2f}")

    def to_config_dict(self) -> dict:
        """Serializable form written to ``.chunkyrc`` (camelCase keys, no run-only flags)."""

        data = self.model_dump(by_alias=True, exclude={"verbose"})
        data["headers"] = [header.model_dump() for header in self.headers]
        if not data.get("files"):
            data.pop("files", None)
        return data


__all__ = [
    "ChunkyOptions",
    "DEFAULT_BUDGET",
    "DEFAULT_OUT_DIR",
    "DEFAULT_OVERHEAD",
    "DEFAULT_TOKENIZER",
    "HeaderField",
]
