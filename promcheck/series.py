"""Data structures for scraped metric samples."""
from dataclasses import dataclass, field
from typing import Dict


NAME_LABEL = "__name__"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


@dataclass(frozen=True)
class Sample:
    """A single scraped sample: label set (with `__name__`), value, timestamp."""
    labels: Dict[str, str] = field(hash=False)
    value: float
    timestamp: float

    @property
    def name(self) -> str:
        return self.labels.get(NAME_LABEL, "")

    def render(self) -> str:
        """Render as `name{a="1", b="2"}`, the way Prometheus prints series."""
        items = sorted((k, v) for k, v in self.labels.items() if k != NAME_LABEL)
        if not items:
            return self.name
        rendered = ", ".join(f'{k}="{_escape(v)}"' for k, v in items)
        return f"{self.name}{{{rendered}}}"
