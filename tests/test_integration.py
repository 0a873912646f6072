"""End-to-end integration tests for todolist.

This module tests the complete workflow using subprocess to run the CLI
as a real user would, ensuring all components work together correctly.
"""

import json
import os
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class TestIntegration:
    """E2E integration tests for the complete todolist workflow."""

    @pytest.fixture
    def temp_db(self):
        """Create a temporary database file for testing."""
        with tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.json') as f:
            temp_path = f.name
        # Delete the file - CLI will create it
        Path(temp_path).unlink()
        yield temp_path
        # Cleanup
        for path in (Path(temp_path), Path(temp_path + ".corrupt")):
            if path.exists():
                path.unlink()

    def run_cli(self, args, db_path, check=True, stdin=""):
        """Run the CLI with given arguments.

        Args:
            args: List of command arguments
            db_path: Path to the database file
            check: Whether to check for non-zero exit codes
            stdin: Text fed to the process on standard input

        Returns:
            subprocess.CompletedProcess instance
        """
        # Set environment variable to use custom database path
        env = {**os.environ, "TODO_DB_PATH": db_path}
        env.pop("TODO_RECOVER_CORRUPT", None)
        result = subprocess.run(
            [sys.executable, "-m", "todolist"] + args,
            input=stdin,
            capture_output=True,
            text=True,
            check=False,
            env=env,
            cwd=PROJECT_ROOT,
        )
        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, result.args, result.stdout, result.stderr
            )
        return result

    def test_complete_workflow_add_list_toggle_delete(self, temp_db):
        """Test the complete workflow: add -> list -> toggle -> delete."""
        result = self.run_cli(["add", "Buy groceries", "-d", "milk, eggs"], temp_db)
        assert "Todo added: #1 Buy groceries" in result.stdout

        result = self.run_cli(["list"], temp_db)
        assert "Buy groceries" in result.stdout
        assert "milk, eggs" in result.stdout
        assert "Pending" in result.stdout

        result = self.run_cli(["toggle", "1"], temp_db)
        assert "Todo #1 marked as completed." in result.stdout

        result = self.run_cli(["list"], temp_db)
        assert "Completed" in result.stdout

        result = self.run_cli(["delete", "1", "--yes"], temp_db)
        assert "Todo #1 deleted." in result.stdout

        result = self.run_cli(["list"], temp_db)
        assert "No todos found." in result.stdout

    def test_scenario_ids_never_reused(self, temp_db):
        """Test that ids continue after deletions across invocations."""
        self.run_cli(["add", "Buy milk", "-d", "2%"], temp_db)
        self.run_cli(["add", "Pay bills"], temp_db)
        self.run_cli(["delete", "1", "-y"], temp_db)

        result = self.run_cli(["add", "Walk dog"], temp_db)
        assert "#3" in result.stdout

        data = json.loads(Path(temp_db).read_text())
        assert [t["id"] for t in data["todos"]] == [2, 3]
        assert data["next_id"] == 4

    def test_edit_persists(self, temp_db):
        """Test editing a todo in one run and reading it in another."""
        self.run_cli(["add", "Draft"], temp_db)
        self.run_cli(["edit", "1", "Final", "-d", "ready"], temp_db)

        todo = json.loads(Path(temp_db).read_text())["todos"][0]
        assert todo["title"] == "Final"
        assert todo["description"] == "ready"
        assert todo["updated_at"] >= todo["created_at"]

    def test_list_filter_by_status(self, temp_db):
        """Test filtering todos by status."""
        self.run_cli(["add", "Todo 1"], temp_db)
        self.run_cli(["add", "Todo 2"], temp_db)
        self.run_cli(["add", "Todo 3"], temp_db)
        self.run_cli(["toggle", "2"], temp_db)

        result = self.run_cli(["list", "--status", "pending"], temp_db)
        assert "Todo 1" in result.stdout
        assert "Todo 2" not in result.stdout
        assert "Todo 3" in result.stdout

        result = self.run_cli(["list", "--status", "done"], temp_db)
        assert "Todo 1" not in result.stdout
        assert "Todo 2" in result.stdout

    def test_error_nonexistent_todo(self, temp_db):
        """Test error handling for unknown ids."""
        for args in (["toggle", "999"], ["edit", "999", "x"], ["delete", "999", "-y"]):
            result = self.run_cli(args, temp_db, check=False)
            assert result.returncode == 1
            assert "Error: Todo #999 not found." in result.stderr

        assert not Path(temp_db).exists()

    def test_malformed_id_is_usage_error(self, temp_db):
        """Test that a non-numeric id is rejected by the parser."""
        result = self.run_cli(["toggle", "abc"], temp_db, check=False)
        assert result.returncode == 2
        assert "invalid int value" in result.stderr

    def test_delete_prompt_reads_stdin(self, temp_db):
        """Test that delete asks for confirmation on standard input."""
        self.run_cli(["add", "Keep me"], temp_db)

        result = self.run_cli(["delete", "1"], temp_db, stdin="n\n")
        assert "Deletion cancelled." in result.stdout

        result = self.run_cli(["delete", "1"], temp_db, stdin="y\n")
        assert "Todo #1 deleted." in result.stdout

    def test_interactive_menu_session(self, temp_db):
        """Test a scripted session through the interactive menu."""
        session = "\n".join([
            "2", "Buy milk", "2%",
            "2", "Pay bills", "",
            "4", "2",
            "5", "1", "yes",
            "1",
            "0",
        ]) + "\n"

        result = self.run_cli([], temp_db, stdin=session)

        assert result.returncode == 0
        assert "Todo deleted successfully!" in result.stdout
        assert "Exiting. Goodbye!" in result.stdout

        data = json.loads(Path(temp_db).read_text())
        assert data["next_id"] == 3
        assert len(data["todos"]) == 1
        assert data["todos"][0]["title"] == "Pay bills"
        assert data["todos"][0]["completed"] is True

    def test_menu_exits_on_end_of_input(self, temp_db):
        """Test that the menu stops cleanly when stdin is closed."""
        result = self.run_cli(["menu"], temp_db, stdin="")
        assert result.returncode == 0
        assert "Goodbye" in result.stdout

    def test_corrupt_file_is_reported(self, temp_db):
        """Test that a corrupt file stops the CLI and is left untouched."""
        Path(temp_db).write_text("{not json")

        result = self.run_cli(["list"], temp_db, check=False)
        assert result.returncode == 1
        assert "Error:" in result.stderr
        assert Path(temp_db).read_text() == "{not json"

    def test_corrupt_file_recovery(self, temp_db):
        """Test that --recover-corrupt moves the file aside and continues."""
        Path(temp_db).write_text("{not json")

        result = self.run_cli(["--recover-corrupt", "add", "Fresh start"], temp_db)
        assert "#1" in result.stdout
        assert "corrupt" in result.stderr
        assert Path(temp_db + ".corrupt").read_text() == "{not json"

        data = json.loads(Path(temp_db).read_text())
        assert [t["title"] for t in data["todos"]] == ["Fresh start"]

    def test_reads_file_written_by_other_tools(self, temp_db):
        """Test loading a hand-written file with nanosecond timestamps."""
        Path(temp_db).write_text(json.dumps({
            "todos": [{
                "id": 5,
                "title": "Imported",
                "description": "from elsewhere",
                "completed": False,
                "created_at": "2024-03-01T10:00:00.123456789+01:00",
                "updated_at": "2024-03-01T10:00:00.123456789+01:00",
            }],
            "next_id": 6,
        }))

        result = self.run_cli(["list"], temp_db)
        assert "Imported" in result.stdout

        result = self.run_cli(["add", "Next"], temp_db)
        assert "#6" in result.stdout

    def test_verbose_logging(self, temp_db):
        """Test that --verbose writes debug logs to stderr."""
        result = self.run_cli(["-v", "add", "Logged"], temp_db)
        assert "DEBUG" in result.stderr
        assert "Saved 1 todos" in result.stderr

    def test_database_file_creation(self, temp_db):
        """Test that database file is created on first add."""
        db_file = Path(temp_db)
        assert not db_file.exists()

        self.run_cli(["list"], temp_db)
        assert not db_file.exists()

        self.run_cli(["add", "First todo"], temp_db)
        assert db_file.exists()

        with open(db_file, 'r') as f:
            data = json.load(f)
        assert set(data) == {"todos", "next_id"}
