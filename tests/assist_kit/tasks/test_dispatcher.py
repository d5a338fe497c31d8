from __future__ import annotations

import pytest

from assist_kit.errors import UnknownTaskType
from assist_kit.tasks import agents_md, copy_files, multi_step, package_install, remote_copy_files
from assist_kit.tasks.base import TaskType
from assist_kit.tasks.dispatcher import HANDLERS, execute_task, get_handler, is_task_type_supported


class TestDispatcher:
    def test_every_task_type_has_a_handler(self):
        assert set(HANDLERS) == set(TaskType)

    @pytest.mark.parametrize(
        ("task_type", "handler"),
        [
            ("copy-files", copy_files.execute),
            ("package-install", package_install.execute),
            ("remote-copy-files", remote_copy_files.execute),
            ("agents-md", agents_md.execute),
            ("multi-step", multi_step.execute),
        ],
    )
    def test_handler_lookup(self, task_type, handler):
        assert get_handler(task_type) is handler
        assert is_task_type_supported(task_type)

    @pytest.mark.parametrize("task_type", ["shell", "", None, "Copy-Files"])
    def test_unknown_types_are_rejected(self, task_type):
        assert not is_task_type_supported(task_type)
        with pytest.raises(UnknownTaskType):
            get_handler(task_type)

    def test_execute_task_with_unknown_type(self, deps):
        with pytest.raises(UnknownTaskType, match="Unknown task type: shell"):
            execute_task({"type": "shell"}, "claude", None, False, deps)

    def test_execute_task_routes_to_handler(self, deps):
        result = execute_task({"type": "multi-step", "steps": []}, "claude", None, False, deps)
        assert result.output == "No steps to execute"
