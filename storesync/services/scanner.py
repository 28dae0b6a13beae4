"""File collection for directory uploads."""
import os
from pathlib import Path
from typing import List, Union

from ..errors import OrchestrationFailure


def is_hidden(name: str) -> bool:
    return name.startswith(".")


class DirectoryScanner:
    """Collects regular files from a folder, skipping hidden entries."""

    @staticmethod
    def scan(root: Union[str, Path]) -> List[Path]:
        """
        Collect all visible regular files recursively.

        Hidden directories are pruned with their whole subtree. Directory
        entries are visited in sorted order so the result is stable for a
        given filesystem snapshot.

        Args:
            root: Root folder to scan

        Returns:
            List of absolute file paths
        """
        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise OrchestrationFailure(f"Not a directory: {root_path}", str(root_path))

        files = []
        for dirpath, dirnames, filenames in os.walk(root_path):
            dirnames[:] = sorted(d for d in dirnames if not is_hidden(d))
            for name in sorted(filenames):
                if is_hidden(name):
                    continue
                candidate = Path(dirpath) / name
                if candidate.is_file():
                    files.append(candidate)
        return files
