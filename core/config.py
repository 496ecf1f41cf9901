from __future__ import annotations
import json
import os
from pathlib import Path

CONFIG_DIR = Path.home() / ".config" / "pc12edit"


def downloads_dir() -> str:
    """Return the user's Downloads directory, falling back to home."""
    if os.name == "nt":
        # Windows: use the known-folder GUID via SHGetKnownFolderPath
        import ctypes
        FOLDERID_Downloads = ctypes.c_char_p(
            b"\xe3\x9c\x5e\x37\x4f\x01\xa5\x4b\xa1\x2e\x4b\x71\x3b\x85\x01\x31"
        )
        buf = ctypes.c_wchar_p()
        try:
            ctypes.windll.shell32.SHGetKnownFolderPath(
                FOLDERID_Downloads, 0, None, ctypes.byref(buf),
            )
            if buf.value:
                return buf.value
        except (OSError, AttributeError):
            pass
    xdg = os.environ.get("XDG_DOWNLOAD_DIR")
    if xdg and Path(xdg).is_dir():
        return xdg
    dl = Path.home() / "Downloads"
    if dl.is_dir():
        return str(dl)
    return str(Path.home())

_DEFAULTS = {
    "dump_length": 1700,
    "marker_byte": 0x4D,
    "marker_group_size": 2,
    "discoveries_path": None,
    "captures_dir": None,
    "log_echo": True,
}

class AppConfig:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or CONFIG_DIR / "config.json"
        self.dump_length: int = _DEFAULTS["dump_length"]
        self.marker_byte: int = _DEFAULTS["marker_byte"]
        self.marker_group_size: int = _DEFAULTS["marker_group_size"]
        self.discoveries_path: str | None = _DEFAULTS["discoveries_path"]
        self.captures_dir: str | None = _DEFAULTS["captures_dir"]
        self.log_echo: bool = _DEFAULTS["log_echo"]
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text())
            for key in _DEFAULTS:
                if key in data:
                    setattr(self, key, data[key])
        except (json.JSONDecodeError, OSError):
            pass

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: getattr(self, key) for key in _DEFAULTS}
        self._path.write_text(json.dumps(data, indent=2))

    def resolved_discoveries_path(self) -> Path:
        if self.discoveries_path:
            return Path(self.discoveries_path).expanduser()
        return self._path.parent / "discoveries.json"

    def resolved_captures_dir(self) -> Path:
        if self.captures_dir:
            return Path(self.captures_dir).expanduser()
        return Path(downloads_dir())
