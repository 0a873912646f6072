"""Core models for todolist.

This module defines the core data structures for todo management:
- Todo: A dataclass representing a single todo record
- TodoList: The in-memory store holding all todos and the id counter
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Return the current local time with its UTC offset attached."""
    return datetime.now().astimezone()


@dataclass
class Todo:
    """Todo model representing a single task record.

    Attributes:
        id: Unique identifier, issued by TodoList and never reused
        title: Short title of the todo
        description: Free-form description
        completed: Whether the todo has been completed
        created_at: Timestamp when the todo was created
        updated_at: Timestamp of the last edit or toggle
    """

    id: int
    title: str
    description: str = ""
    completed: bool = False
    created_at: datetime = field(default_factory=local_now)
    updated_at: datetime = field(default_factory=local_now)

    def touch(self, now: datetime) -> None:
        """Set updated_at to now, keeping it if now is earlier."""
        self.updated_at = max(now, self.updated_at)


@dataclass
class TodoList:
    """Ordered collection of todos plus the next id to issue.

    Todos keep their insertion order. Ids are handed out from ``next_id``,
    which only ever grows, so an id is never reused after a delete.

    Attributes:
        todos: Todos in insertion order
        next_id: The id the next created todo will receive
    """

    todos: List[Todo] = field(default_factory=list)
    next_id: int = 1

    def add_todo(self, title: str, description: str = "", now: Optional[datetime] = None) -> Todo:
        """Create a todo and append it to the end of the list.

        Args:
            title: Todo title
            description: Todo description
            now: Creation timestamp. Defaults to the current local time.

        Returns:
            The created Todo with its assigned id
        """
        now = now or local_now()
        todo = Todo(
            id=self.next_id,
            title=title,
            description=description,
            completed=False,
            created_at=now,
            updated_at=now,
        )
        self.todos.append(todo)
        self.next_id += 1
        logger.debug("Created todo #%d", todo.id)
        return todo

    def get_todo(self, todo_id: int) -> Optional[Todo]:
        """Return the todo with the given id, or None if there is none."""
        for todo in self.todos:
            if todo.id == todo_id:
                return todo
        return None

    def edit_todo(
        self, todo_id: int, title: str, description: str, now: Optional[datetime] = None
    ) -> bool:
        """Replace the title and description of a todo.

        Args:
            todo_id: ID of the todo to edit
            title: New title
            description: New description
            now: Modification timestamp. Defaults to the current local time.

        Returns:
            True if the todo was found and edited, False otherwise
        """
        todo = self.get_todo(todo_id)
        if todo is None:
            return False

        todo.title = title
        todo.description = description
        todo.touch(now or local_now())
        logger.debug("Edited todo #%d", todo_id)
        return True

    def delete_todo(self, todo_id: int) -> bool:
        """Remove a todo, keeping the order of the remaining ones.

        Returns:
            True if a todo was removed, False if the id was unknown
        """
        for index, todo in enumerate(self.todos):
            if todo.id == todo_id:
                del self.todos[index]
                logger.debug("Deleted todo #%d", todo_id)
                return True
        return False

    def toggle_completed(self, todo_id: int, now: Optional[datetime] = None) -> bool:
        """Flip the completed flag of a todo.

        Returns:
            True if the todo was found and toggled, False otherwise
        """
        todo = self.get_todo(todo_id)
        if todo is None:
            return False

        todo.completed = not todo.completed
        todo.touch(now or local_now())
        logger.debug("Toggled todo #%d to completed=%s", todo_id, todo.completed)
        return True

    def list_todos(self) -> List[Todo]:
        """Return all todos in storage order."""
        return list(self.todos)
