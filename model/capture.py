from __future__ import annotations
import json
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

DEFAULT_SYX_NAME = "pc12_config.syx"


@dataclass
class Capture:
    """A raw dump taken from the device, plus a note of what was edited.

    The ``.syx`` file holds the dump bytes exactly as received; the JSON
    sidecar only carries metadata.
    """
    name: str
    data: bytes | None = None
    edit: str = ""  # e.g. "col1 row A CC 1 -> 2"
    notes: str = ""
    created: str = field(default_factory=lambda: date.today().isoformat())

    def to_dict(self) -> dict:
        """Return serializable metadata dict. Does not include syx_file; use save() to write the full JSON."""
        return {
            "name": self.name,
            "edit": self.edit,
            "notes": self.notes,
            "created": self.created,
        }

    def save(self, json_path: Path) -> None:
        d = self.to_dict()
        if self.data is not None:
            syx_path = json_path.with_suffix(".syx")
            syx_path.write_bytes(self.data)
            d["syx_file"] = syx_path.name
        else:
            d["syx_file"] = None
        json_path.write_text(json.dumps(d, indent=2))

    @classmethod
    def load(cls, json_path: Path) -> Capture:
        d = json.loads(json_path.read_text())
        if "name" not in d:
            raise ValueError(f"Capture JSON missing required 'name' field: {json_path}")
        data = None
        if d.get("syx_file"):
            # only files next to the JSON are accepted
            syx_path = json_path.parent / Path(d["syx_file"]).name
            if syx_path.exists():
                data = syx_path.read_bytes()
        return cls(
            name=d["name"],
            data=data,
            edit=d.get("edit", ""),
            notes=d.get("notes", ""),
            created=d.get("created", date.today().isoformat()),
        )

    @classmethod
    def from_syx(cls, syx_path: Path) -> Capture:
        """Wrap a bare .syx file; metadata comes from the sidecar if present."""
        json_path = syx_path.with_suffix(".json")
        if json_path.exists():
            capture = cls.load(json_path)
            capture.data = syx_path.read_bytes()
            return capture
        return cls(name=syx_path.stem, data=syx_path.read_bytes())

    @property
    def slug(self) -> str:
        return re.sub(r"[^\w-]", "-", self.name.lower()).strip("-")
