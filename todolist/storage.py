"""Storage layer for todolist.

This module provides an abstract storage interface and a JSON file
implementation for persisting the whole todo list. Every save rewrites the
file in full. The JsonStorage implementation uses fcntl-based file locking
around reads and writes.

A missing (or empty) file loads as an empty list. A file whose content
cannot be turned back into a TodoList raises CorruptStorageError, unless
corrupt-file recovery is enabled.
"""

import fcntl
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from todolist.models import Todo, TodoList

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "todos.json"
TRUTHY = ("1", "true", "yes", "on")


class StorageError(Exception):
    """Base class for storage failures other than plain I/O errors."""


class CorruptStorageError(StorageError):
    """Raised when a storage file exists but its content is not a todo list."""


class Storage(ABC):
    """Abstract base class for todo list storage implementations."""

    @abstractmethod
    def save(self, todo_list: TodoList) -> None:
        """Save the full todo list to storage.

        Args:
            todo_list: TodoList to persist
        """
        pass

    @abstractmethod
    def load(self) -> TodoList:
        """Load the todo list from storage.

        Returns:
            The stored TodoList, or an empty one if nothing is stored yet
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete all data from storage."""
        pass


def _parse_timestamp(value: str, name: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise CorruptStorageError(f"'{name}' is not an ISO 8601 timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        raise CorruptStorageError(f"'{name}' has no UTC offset: {value!r}")
    return parsed


def _require(data: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise CorruptStorageError(f"Missing field '{key}'")
    value = data[key]
    # bool is a subclass of int, so it needs its own check
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise CorruptStorageError(
            f"Field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def todo_to_dict(todo: Todo) -> Dict[str, Any]:
    """Convert a Todo to its JSON document form."""
    return {
        "id": todo.id,
        "title": todo.title,
        "description": todo.description,
        "completed": todo.completed,
        "created_at": todo.created_at.isoformat(),
        "updated_at": todo.updated_at.isoformat(),
    }


def todo_from_dict(data: Any) -> Todo:
    """Build a Todo from its JSON document form.

    Raises:
        CorruptStorageError: If a field is missing or has the wrong type
    """
    if not isinstance(data, dict):
        raise CorruptStorageError(f"Todo entry must be an object, got {type(data).__name__}")

    todo_id = _require(data, "id", int)
    if todo_id < 1:
        raise CorruptStorageError(f"Todo id must be positive, got {todo_id}")

    created_at = _parse_timestamp(_require(data, "created_at", str), "created_at")
    updated_at = _parse_timestamp(_require(data, "updated_at", str), "updated_at")
    if updated_at < created_at:
        raise CorruptStorageError(f"Todo #{todo_id} was updated before it was created")

    return Todo(
        id=todo_id,
        title=_require(data, "title", str),
        description=_require(data, "description", str),
        completed=_require(data, "completed", bool),
        created_at=created_at,
        updated_at=updated_at,
    )


def todo_list_to_dict(todo_list: TodoList) -> Dict[str, Any]:
    """Convert a TodoList to its JSON document form."""
    return {
        "todos": [todo_to_dict(todo) for todo in todo_list.todos],
        "next_id": todo_list.next_id,
    }


def todo_list_from_dict(data: Any) -> TodoList:
    """Build a TodoList from its JSON document form.

    The todo array may be stored under either "todos" or "records".

    Raises:
        CorruptStorageError: If the document does not describe a valid list
    """
    if not isinstance(data, dict):
        raise CorruptStorageError(f"Document must be an object, got {type(data).__name__}")

    key = "todos" if "todos" in data or "records" not in data else "records"
    entries = _require(data, key, list)
    next_id = _require(data, "next_id", int)

    todos = [todo_from_dict(entry) for entry in entries]

    seen = set()
    for todo in todos:
        if todo.id in seen:
            raise CorruptStorageError(f"Duplicate todo id {todo.id}")
        seen.add(todo.id)

    if next_id < 1 or (seen and next_id <= max(seen)):
        raise CorruptStorageError(
            f"next_id {next_id} must be greater than every stored id"
        )

    return TodoList(todos=todos, next_id=next_id)


class JsonStorage(Storage):
    """JSON file-based storage implementation with file locking.

    Attributes:
        file_path: Path to the JSON storage file
        recover_corrupt: If True, a corrupt file is moved aside and an empty
            list is loaded instead of raising CorruptStorageError
    """

    def __init__(self, file_path: Optional[str] = None, recover_corrupt: Optional[bool] = None):
        """Initialize JsonStorage with a file path.

        Args:
            file_path: Path to the JSON file for storage. If None, uses
                      TODO_DB_PATH environment variable or defaults to todos.json
            recover_corrupt: Enable corrupt-file recovery. If None, uses the
                      TODO_RECOVER_CORRUPT environment variable.
        """
        if file_path is None:
            file_path = os.environ.get("TODO_DB_PATH", DEFAULT_DB_PATH)
        if recover_corrupt is None:
            recover_corrupt = os.environ.get("TODO_RECOVER_CORRUPT", "").lower() in TRUTHY
        self.file_path = Path(file_path)
        self.recover_corrupt = recover_corrupt

    @property
    def corrupt_path(self) -> Path:
        """Where a corrupt file is moved when recovery is enabled."""
        return self.file_path.with_name(self.file_path.name + ".corrupt")

    def save(self, todo_list: TodoList) -> None:
        """Save the todo list to the JSON file, replacing its content.

        Args:
            todo_list: TodoList to persist

        Raises:
            OSError: If the file cannot be written
        """
        # Ensure parent directory exists
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        # The document is complete before the file is truncated
        content = json.dumps(todo_list_to_dict(todo_list), indent=2)

        # Write with file locking
        with open(self.file_path, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(content)
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        logger.debug("Saved %d todos to %s", len(todo_list.todos), self.file_path)

    def load(self) -> TodoList:
        """Load the todo list from the JSON file.

        Returns:
            The stored TodoList. Returns an empty TodoList if the file
            doesn't exist or is empty.

        Raises:
            CorruptStorageError: If the file content is not a valid todo list
                                 and recovery is disabled
            OSError: If the file exists but cannot be read
        """
        if not self.file_path.exists():
            logger.debug("No storage file at %s, starting empty", self.file_path)
            return TodoList()

        # Read with file locking
        with open(self.file_path, "rb") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                raw = f.read()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if not raw.strip():
            return TodoList()

        try:
            try:
                data = json.loads(raw.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise CorruptStorageError(f"{self.file_path} is not UTF-8 text: {e}") from e
            except json.JSONDecodeError as e:
                raise CorruptStorageError(f"Invalid JSON in {self.file_path}: {e}") from e
            todo_list = todo_list_from_dict(data)
        except CorruptStorageError as e:
            if not self.recover_corrupt:
                raise
            self.file_path.replace(self.corrupt_path)
            logger.warning(
                "Storage file %s is corrupt (%s); moved it to %s and started empty",
                self.file_path,
                e,
                self.corrupt_path,
            )
            return TodoList()

        logger.debug("Loaded %d todos from %s", len(todo_list.todos), self.file_path)
        return todo_list

    def delete(self) -> None:
        """Delete the JSON storage file.

        If the file doesn't exist, this method does nothing.
        """
        if self.file_path.exists():
            self.file_path.unlink()
