"""Configuration management — JSON-based, stored in ~/.config/outparse/."""
import json
from pathlib import Path
from typing import Optional

# Per product surface: maximum buffer length and debounce delay
SURFACES = {
    "free": {"max_length": 500, "debounce_ms": 1200},
    "editor": {"max_length": 2000, "debounce_ms": 1000},
    "unbounded": {"max_length": None, "debounce_ms": 700},
}

DEFAULT_CONFIG = {
    "surface": "editor",
    "max_length": None,       # overrides the surface preset when set
    "debounce_ms": None,      # overrides the surface preset when set
    "engine": "local",        # "local" or "api"
    "api_url": "http://localhost:8080/v1/analyze",
    "speech_url": "",
    "api_timeout_ms": 30000,
    "offset_units": "utf-16",  # how the remote engine counts offsets
    "tone": "Professional",
    "credits": 3,
    "debug_logging": False,
    "host": "127.0.0.1",
    "port": 8000,
}

CONFIG_DIR = Path.home() / ".config" / "outparse"
CONFIG_FILE = CONFIG_DIR / "config.json"


class Config:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else CONFIG_FILE
        self._data = dict(DEFAULT_CONFIG)
        # values hidden by override(), written back in their place on save
        self._shadowed = {}
        self.load()

    def load(self):
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    stored = json.load(f)
                self._data.update(stored)
            except (json.JSONDecodeError, IOError):
                pass

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        stored = dict(self._data)
        stored.update(self._shadowed)
        with open(self.path, "w") as f:
            json.dump(stored, f, indent=2, ensure_ascii=False)

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._shadowed.pop(key, None)
        self._data[key] = value
        self.save()

    def override(self, key, value):
        """Set a value for this process only; it is not written to disk."""
        self._shadowed.setdefault(key, self._data.get(key))
        self._data[key] = value

    @property
    def surface(self):
        name = self._data.get("surface", "editor")
        return name if name in SURFACES else "editor"

    @surface.setter
    def surface(self, val):
        if val not in SURFACES:
            raise ValueError(f"Unknown surface: {val!r}")
        self.set("surface", val)

    @property
    def max_length(self) -> Optional[int]:
        if self._data.get("max_length") is not None:
            return self._data["max_length"]
        return SURFACES[self.surface]["max_length"]

    @property
    def debounce_ms(self) -> int:
        if self._data.get("debounce_ms") is not None:
            return self._data["debounce_ms"]
        return SURFACES[self.surface]["debounce_ms"]

    @property
    def engine(self):
        return self._data["engine"]

    @engine.setter
    def engine(self, val):
        self.set("engine", val)

    @property
    def api_url(self):
        return self._data["api_url"]

    @property
    def speech_url(self):
        return self._data.get("speech_url", "")

    @property
    def api_timeout_ms(self):
        return self._data["api_timeout_ms"]

    @property
    def offset_units(self):
        return self._data.get("offset_units", "utf-16")

    @property
    def tone(self):
        return self._data["tone"]

    @tone.setter
    def tone(self, val):
        self.set("tone", val)

    @property
    def credits(self):
        return self._data["credits"]

    @property
    def debug_logging(self):
        return self._data["debug_logging"]

    @property
    def host(self):
        return self._data.get("host", "127.0.0.1")

    @property
    def port(self):
        return self._data.get("port", 8000)
