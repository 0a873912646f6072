"""Command-line interface for todolist.

This module provides the CLI interface for managing todos using argparse.
It supports the following commands:
- add: Create a new todo
- list: List all todos or filter by status
- edit: Replace the title and description of a todo
- toggle: Flip the completion status of a todo
- delete: Delete a todo
- menu: Run the interactive menu (the default when no command is given)
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional

from todolist.models import Todo
from todolist.repository import TodoRepository
from todolist.storage import CorruptStorageError, JsonStorage, StorageError

InputFunc = Callable[[str], str]

TABLE_RULE = "-" * 100


def truncate(text: str, max_chars: int) -> str:
    """Shorten text to max_chars, ending in '...' when cut."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3] + "..."


def format_table(todos: List[Todo]) -> str:
    """Render todos as a fixed-width table.

    Args:
        todos: Todos to render, in display order

    Returns:
        The table as a single string without a trailing newline
    """
    if not todos:
        return "No todos found."

    lines = [
        f"{'ID':<5} {'TITLE':<30} {'DESCRIPTION':<50} {'STATUS':<10}",
        TABLE_RULE,
    ]
    for todo in todos:
        status = "Completed" if todo.completed else "Pending"
        lines.append(
            f"{todo.id:<5} {truncate(todo.title, 27):<30} "
            f"{truncate(todo.description, 47):<50} {status:<10}"
        )
    return "\n".join(lines)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="todo",
        description="Local todo list manager"
    )
    parser.add_argument(
        "--file",
        help="Path to the todo file (default: $TODO_DB_PATH or todos.json)"
    )
    parser.add_argument(
        "--recover-corrupt",
        action="store_true",
        default=None,
        help="Move a corrupt todo file aside and start with an empty list"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a new todo")
    add_parser.add_argument("title", help="Todo title")
    add_parser.add_argument(
        "-d", "--description",
        default="",
        help="Todo description"
    )

    # List command
    list_parser = subparsers.add_parser("list", help="List todos")
    list_parser.add_argument(
        "--status",
        choices=["pending", "done"],
        help="Filter todos by status"
    )

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a todo")
    edit_parser.add_argument("id", type=int, help="Todo ID")
    edit_parser.add_argument("title", help="New title")
    edit_parser.add_argument(
        "-d", "--description",
        default="",
        help="New description"
    )

    # Toggle command
    toggle_parser = subparsers.add_parser("toggle", help="Toggle completion status")
    toggle_parser.add_argument("id", type=int, help="Todo ID")

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a todo")
    delete_parser.add_argument("id", type=int, help="Todo ID")
    delete_parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Do not ask for confirmation"
    )

    subparsers.add_parser("menu", help="Run the interactive menu")

    return parser


def prompt(message: str, input_func: Optional[InputFunc] = None) -> str:
    """Ask for one line of input and return it stripped."""
    read = input_func or input
    return read(f"{message} ").strip()


def confirm(message: str, input_func: Optional[InputFunc] = None) -> bool:
    """Ask a yes/no question until the answer is one of y, yes, n or no."""
    while True:
        answer = prompt(f"{message} (y/n):", input_func).lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please enter 'y' or 'n'")


def cmd_add(args: argparse.Namespace, repo: TodoRepository) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command-line arguments
        repo: TodoRepository instance

    Returns:
        Exit code (0 for success)
    """
    todo = repo.create_todo(title=args.title, description=args.description)
    print(f"Todo added: #{todo.id} {todo.title}")
    return 0


def cmd_list(args: argparse.Namespace, repo: TodoRepository) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command-line arguments
        repo: TodoRepository instance

    Returns:
        Exit code (0 for success)
    """
    completed = None if args.status is None else args.status == "done"
    print(format_table(repo.get_all_todos(completed=completed)))
    return 0


def cmd_edit(args: argparse.Namespace, repo: TodoRepository) -> int:
    """Handle the 'edit' command.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not repo.edit_todo(args.id, args.title, args.description):
        print(f"Error: Todo #{args.id} not found.", file=sys.stderr)
        return 1

    print(f"Todo #{args.id} updated.")
    return 0


def cmd_toggle(args: argparse.Namespace, repo: TodoRepository) -> int:
    """Handle the 'toggle' command.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not repo.toggle_completed(args.id):
        print(f"Error: Todo #{args.id} not found.", file=sys.stderr)
        return 1

    todo = repo.get_todo(args.id)
    state = "completed" if todo.completed else "pending"
    print(f"Todo #{args.id} marked as {state}.")
    return 0


def cmd_delete(args: argparse.Namespace, repo: TodoRepository) -> int:
    """Handle the 'delete' command.

    Asks for confirmation unless --yes is given.

    Returns:
        Exit code (0 for success or cancellation, 1 for error)
    """
    todo = repo.get_todo(args.id)
    if todo is None:
        print(f"Error: Todo #{args.id} not found.", file=sys.stderr)
        return 1

    if not args.yes:
        try:
            confirmed = confirm(f"Delete todo #{todo.id} '{todo.title}'?")
        except EOFError:
            confirmed = False
        if not confirmed:
            print("Deletion cancelled.")
            return 0

    repo.delete_todo(args.id)
    print(f"Todo #{args.id} deleted.")
    return 0


def cmd_menu(args: argparse.Namespace, repo: TodoRepository) -> int:
    """Handle the 'menu' command."""
    return run_menu(repo)


def display_menu() -> None:
    print("\n===== TODO APP =====")
    print("1. List all todos")
    print("2. Add a new todo")
    print("3. Edit a todo")
    print("4. Toggle todo completion status")
    print("5. Delete a todo")
    print("0. Exit")
    print("====================")


def _read_id(message: str, input_func: Optional[InputFunc]) -> Optional[int]:
    raw = prompt(message, input_func)
    try:
        return int(raw)
    except ValueError:
        print("Invalid ID format.")
        return None


def _menu_add(repo: TodoRepository, input_func: Optional[InputFunc]) -> None:
    title = prompt("Enter todo title:", input_func)
    description = prompt("Enter todo description:", input_func)
    repo.create_todo(title, description)
    print("Todo added successfully!")


def _menu_edit(repo: TodoRepository, input_func: Optional[InputFunc]) -> None:
    print(format_table(repo.get_all_todos()))
    todo_id = _read_id("Enter the ID of the todo to edit:", input_func)
    if todo_id is None:
        return

    todo = repo.get_todo(todo_id)
    if todo is None:
        print(f"Todo with ID {todo_id} not found.")
        return

    print(f"Editing todo: {todo.title}")
    title = prompt(f"Enter new title (current: {todo.title}):", input_func)
    description = prompt(f"Enter new description (current: {todo.description}):", input_func)
    repo.edit_todo(todo_id, title, description)
    print("Todo updated successfully!")


def _menu_toggle(repo: TodoRepository, input_func: Optional[InputFunc]) -> None:
    print(format_table(repo.get_all_todos()))
    todo_id = _read_id("Enter the ID of the todo to toggle completion status:", input_func)
    if todo_id is None:
        return

    if repo.toggle_completed(todo_id):
        print("Todo status toggled successfully!")
    else:
        print(f"Todo with ID {todo_id} not found.")


def _menu_delete(repo: TodoRepository, input_func: Optional[InputFunc]) -> None:
    print(format_table(repo.get_all_todos()))
    todo_id = _read_id("Enter the ID of the todo to delete:", input_func)
    if todo_id is None:
        return

    todo = repo.get_todo(todo_id)
    if todo is None:
        print(f"Todo with ID {todo_id} not found.")
        return

    print("You are about to delete the following todo:")
    print(f"Title: {todo.title}")
    print(f"Description: {todo.description}")

    if confirm("Are you sure you want to delete this todo?", input_func):
        repo.delete_todo(todo_id)
        print("Todo deleted successfully!")
    else:
        print("Deletion cancelled.")


MENU_ACTIONS = {
    "2": _menu_add,
    "3": _menu_edit,
    "4": _menu_toggle,
    "5": _menu_delete,
}


def run_menu(repo: TodoRepository, input_func: Optional[InputFunc] = None) -> int:
    """Run the interactive menu until the user exits.

    A failed save is reported and the loop continues; the change stays in
    memory and is written again by the next successful save.

    Args:
        repo: TodoRepository instance
        input_func: Function used to read a line of input

    Returns:
        Exit code (always 0)
    """
    while True:
        display_menu()
        try:
            choice = prompt("Enter your choice:", input_func)
            if choice == "0":
                print("Exiting. Goodbye!")
                return 0
            if choice == "1":
                print("\n--- All Todos ---")
                print(format_table(repo.get_all_todos()))
                continue

            action = MENU_ACTIONS.get(choice)
            if action is None:
                print("Invalid choice. Please try again.")
                continue
            action(repo, input_func)
        except EOFError:
            print("\nExiting. Goodbye!")
            return 0
        except OSError as e:
            print(f"Error: could not save todos: {e}", file=sys.stderr)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG level when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    storage = JsonStorage(args.file, recover_corrupt=args.recover_corrupt)
    try:
        repo = TodoRepository(storage)
    except CorruptStorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Use --recover-corrupt to move the file aside and start over.", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: could not read {storage.file_path}: {e}", file=sys.stderr)
        return 1

    # Dispatch to command handlers
    commands = {
        "add": cmd_add,
        "list": cmd_list,
        "edit": cmd_edit,
        "toggle": cmd_toggle,
        "delete": cmd_delete,
        "menu": cmd_menu,
    }

    handler = commands.get(args.command or "menu")
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    try:
        return handler(args, repo)
    except (OSError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
