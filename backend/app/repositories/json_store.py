import json
import os
from typing import Any

from filelock import FileLock, Timeout


class JsonStoreError(Exception):
    pass


class JsonFileStore:
    """
    A JSON document on disk, read and written under a sibling `.lock` file so
    the API process, the sync scheduler and the CLI scripts never interleave
    writes.
    """

    def __init__(self, path: str, lock_timeout: float = 10):
        self.path = path
        self.lock = FileLock(f"{path}.lock")
        self.lock_timeout = lock_timeout

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def read(self, default: Any = None) -> Any:
        if not self.exists():
            return default
        try:
            with self.lock.acquire(timeout=self.lock_timeout):
                with open(self.path, "r", encoding="utf-8") as f:
                    return json.load(f)
        except Timeout:
            raise JsonStoreError(f"Could not acquire lock for {self.path}")

    def write(self, data: Any) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        try:
            with self.lock.acquire(timeout=self.lock_timeout):
                tmp = f"{self.path}.tmp"
                with open(tmp, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp, self.path)
        except Timeout:
            raise JsonStoreError(f"Could not acquire lock for {self.path}")

    def update(self, fn, default: Any = None) -> Any:
        """Read-modify-write under a single lock; `fn` mutates and returns the document."""
        try:
            with self.lock.acquire(timeout=self.lock_timeout):
                data = default
                if self.exists():
                    with open(self.path, "r", encoding="utf-8") as f:
                        data = json.load(f)
                data = fn(data)
                tmp = f"{self.path}.tmp"
                with open(tmp, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp, self.path)
                return data
        except Timeout:
            raise JsonStoreError(f"Could not acquire lock for {self.path}")

    def delete(self) -> bool:
        try:
            with self.lock.acquire(timeout=self.lock_timeout):
                if os.path.exists(self.path):
                    os.remove(self.path)
                    return True
                return False
        except Timeout:
            raise JsonStoreError(f"Could not acquire lock for {self.path}")
