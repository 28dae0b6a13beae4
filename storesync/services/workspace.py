"""
WorkspaceState - the single JSON file holding local workspace state.

Layout:
    {
        "fileSearchStores": {"<display name>": "fileSearchStores/..."},
        "uploadOperations": {"<operation id>": {...}}
    }

The file is rewritten in full on every change (temp file + rename).
Writers in separate processes are not coordinated: last write wins.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_FILE = ".storesync.json"
STORES_KEY = "fileSearchStores"
OPERATIONS_KEY = "uploadOperations"


def default_workspace_path() -> Path:
    """Workspace file path: STORESYNC_WORKSPACE or ./.storesync.json."""
    override = os.getenv("STORESYNC_WORKSPACE")
    if override:
        return Path(override).expanduser()
    return Path.cwd() / DEFAULT_WORKSPACE_FILE


def empty_state() -> Dict[str, Any]:
    return {STORES_KEY: {}, OPERATIONS_KEY: {}}


class WorkspaceState:
    """Reads and writes the workspace file."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path is not None else default_workspace_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Any]:
        """
        Load state from disk.

        A missing file is created with defaults. A corrupted file is logged
        and treated as empty (it is left on disk until the next save).
        """
        if not self._path.exists():
            state = empty_state()
            self.save(state)
            return state

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("WorkspaceState: Failed to parse %s: %s - using defaults", self._path, e)
            return empty_state()

        if not isinstance(raw, dict):
            logger.warning("WorkspaceState: %s does not hold an object - using defaults", self._path)
            return empty_state()

        state = empty_state()
        state.update(raw)
        for key in (STORES_KEY, OPERATIONS_KEY):
            if not isinstance(state[key], dict):
                logger.warning("WorkspaceState: Invalid %s section, resetting it", key)
                state[key] = {}
        return state

    def save(self, state: Dict[str, Any]) -> None:
        """Write the full snapshot atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._path.parent), prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def stores(self) -> Dict[str, str]:
        return dict(self.load()[STORES_KEY])

    def add_store(self, display_name: str, resource_name: str) -> None:
        state = self.load()
        state[STORES_KEY][display_name] = resource_name
        self.save(state)

    def remove_store(self, resource_name: str) -> bool:
        """Drop every display name pointing at resource_name."""
        state = self.load()
        stores = state[STORES_KEY]
        names = [k for k, v in stores.items() if v == resource_name]
        if not names:
            return False
        for name in names:
            del stores[name]
        self.save(state)
        return True

    def resolve_store(self, name: str) -> str:
        """Map a remembered display name to its resource name; pass others through."""
        if name.startswith("fileSearchStores/"):
            return name
        return self.stores().get(name, name)
