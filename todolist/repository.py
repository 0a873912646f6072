"""Todo repository tying the in-memory store to its storage.

This module provides the TodoRepository class. It loads the todo list once
when created, runs every operation against the in-memory TodoList and writes
the full list back to storage after each successful change.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from todolist.models import Todo, TodoList, local_now
from todolist.storage import JsonStorage, Storage

logger = logging.getLogger(__name__)


class TodoRepository:
    """Repository for managing todos with a storage backend.

    The repository owns a single TodoList. Mutating operations save the
    whole list right after they succeed; operations that do not find their
    target leave both memory and storage untouched. If a save fails the
    exception propagates and the in-memory change is kept.

    Attributes:
        storage: Storage backend for persisting the todo list
        todo_list: The in-memory todo list
    """

    def __init__(
        self,
        storage: Optional[Storage] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize TodoRepository and load the stored todo list.

        Args:
            storage: Storage implementation to use. If None, uses JsonStorage
                    with default file path.
            clock: Callable returning the current aware datetime. Defaults
                   to the local time.

        Raises:
            CorruptStorageError: If the stored data cannot be loaded
            OSError: If the storage cannot be read
        """
        self.storage = storage or JsonStorage()
        self.clock = clock or local_now
        self.todo_list = self.storage.load()

    def save(self) -> None:
        """Write the full todo list to storage."""
        self.storage.save(self.todo_list)

    def create_todo(self, title: str, description: str = "") -> Todo:
        """Create a new todo.

        Args:
            title: Todo title
            description: Todo description (default: empty)

        Returns:
            The created Todo object with assigned ID
        """
        todo = self.todo_list.add_todo(title, description, now=self.clock())
        self.save()
        logger.info("Added todo #%d", todo.id)
        return todo

    def get_todo(self, todo_id: int) -> Optional[Todo]:
        """Get a specific todo by ID.

        Args:
            todo_id: ID of the todo to retrieve

        Returns:
            Todo object if found, None otherwise
        """
        return self.todo_list.get_todo(todo_id)

    def get_all_todos(self, completed: Optional[bool] = None) -> List[Todo]:
        """Get all todos, optionally filtered by completion.

        Args:
            completed: Optional filter. If provided, only todos whose
                       completed flag matches are returned.

        Returns:
            List of Todo objects in insertion order
        """
        todos = self.todo_list.list_todos()
        if completed is not None:
            todos = [todo for todo in todos if todo.completed == completed]
        return todos

    def edit_todo(self, todo_id: int, title: str, description: str) -> bool:
        """Replace the title and description of a todo.

        Returns:
            True if the todo was edited, False if it didn't exist
        """
        if not self.todo_list.edit_todo(todo_id, title, description, now=self.clock()):
            return False
        self.save()
        logger.info("Edited todo #%d", todo_id)
        return True

    def delete_todo(self, todo_id: int) -> bool:
        """Delete a todo by ID.

        Returns:
            True if todo was deleted, False if todo didn't exist
        """
        if not self.todo_list.delete_todo(todo_id):
            return False
        self.save()
        logger.info("Deleted todo #%d", todo_id)
        return True

    def toggle_completed(self, todo_id: int) -> bool:
        """Flip the completed flag of a todo.

        Returns:
            True if the todo was toggled, False if it didn't exist
        """
        if not self.todo_list.toggle_completed(todo_id, now=self.clock()):
            return False
        self.save()
        logger.info("Toggled todo #%d", todo_id)
        return True
