"""
Durable client preferences.

A small string key/value store playing the role browser localStorage plays
for the UI: the CORS proxy preference and the signed-in session survive a
restart when a state file is configured, everything else lives in memory.
"""

import json
import threading
from pathlib import Path
from typing import Dict, Optional

from ..config import ClientStateConfig
from ..domain.errors import ConfigurationError
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()


class ClientStateStore:
    """
    String key/value store with optional JSON-file persistence.

    Values are always strings, booleans are stored as "true"/"false" the
    same way the browser stores them.

    Usage:
        store = ClientStateStore(settings.client_state)
        store.set("corsProxyUrl", "https://proxy.example/")
        store.get("corsProxyUrl")
    """

    def __init__(self, config: Optional[ClientStateConfig] = None):
        self.config = config or ClientStateConfig()
        self._path: Optional[Path] = Path(self.config.state_file) if self.config.state_file else None
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._load()

        logger.info(
            "ClientStateStore initialized",
            state_file=str(self._path) if self._path else None,
            keys=len(self._values),
        )

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Client state file is unreadable: {e}",
                details={"state_file": str(self._path)},
            ) from e
        if not isinstance(raw, dict):
            raise ConfigurationError(
                "Client state file must contain a JSON object",
                details={"state_file": str(self._path)},
            )
        self._values = {str(key): str(value) for key, value in raw.items()}

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def get_bool(self, key: str) -> bool:
        return self._values.get(key) == "true"

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
            self._flush()
        logger.debug("Client state updated", key=key, trace_id=current_trace_id())

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, "true" if value else "false")

    def remove(self, key: str) -> None:
        with self._lock:
            if self._values.pop(key, None) is None:
                return
            self._flush()
        logger.debug("Client state key removed", key=key, trace_id=current_trace_id())

    def snapshot(self) -> Dict[str, str]:
        return dict(self._values)
