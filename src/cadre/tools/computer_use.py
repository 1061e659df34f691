"""Computer-use tool: screened shell commands and a fixed set of file actions."""

from __future__ import annotations

import asyncio
import os
import platform
import shutil
import signal
from pathlib import Path
from typing import Any, Optional

from ..core.errors import ToolContextError, ValidationError
from ..models.task import RunContext
from ..utils.timestamps import now_iso
from .base import BaseTool


class ComputerUseTool(BaseTool):
    name = "computer_use"
    description = "Run safe shell commands and perform file operations"
    capabilities = ["file_operations", "system_commands"]

    ACTIONS = (
        "list_files",
        "create_folder",
        "rename_file",
        "copy_file",
        "move_file",
        "delete_file",
        "get_system_info",
    )

    def is_safe_command(self, command: str) -> bool:
        lowered = command.lower()
        return not any(fragment in lowered for fragment in self.config.get("blocked_commands", []))

    async def execute_command(self, command: str, parameters: dict[str, Any]) -> dict[str, Any]:
        if not self.is_safe_command(command):
            raise ValidationError("Command not allowed for security reasons")

        timeout = parameters.get("timeout", self.config.get("command_timeout_seconds", 30))
        limit = self.config.get("max_output_bytes", 1024 * 1024)
        cwd = parameters.get("workingDirectory") or parameters.get("working_directory")

        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            start_new_session=hasattr(os, "killpg"),
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await self._terminate(proc)
            raise TimeoutError(f"Command timed out after {timeout}s")
        except BaseException:
            # Cancelled by the run deadline
            await self._terminate(proc)
            raise

        return {
            "success": proc.returncode == 0,
            "command": command,
            "exitCode": proc.returncode,
            "output": stdout[:limit].decode("utf-8", errors="replace"),
            "error": stderr[:limit].decode("utf-8", errors="replace") or None,
            "timestamp": now_iso(),
        }

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        """Kill the command's whole process group and reap the shell."""
        if proc.returncode is None:
            try:
                if hasattr(os, "killpg"):
                    os.killpg(proc.pid, signal.SIGKILL)
                else:
                    proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()

    async def execute_action(self, action: str, parameters: dict[str, Any]) -> dict[str, Any]:
        action = action.lower()
        if action not in self.ACTIONS:
            raise ValidationError(f"Unknown action: {action}")
        handler = getattr(self, f"_{action}")
        result = await asyncio.to_thread(handler, parameters)
        return {"success": True, "action": action, **result, "timestamp": now_iso()}

    @staticmethod
    def _path(parameters: dict[str, Any], *keys: str, default: Optional[str] = None) -> Path:
        for key in keys:
            if parameters.get(key):
                return Path(parameters[key]).expanduser()
        if default is not None:
            return Path(default)
        raise ValidationError(f"Missing parameter: {keys[0]}")

    def _list_files(self, parameters: dict[str, Any]) -> dict[str, Any]:
        directory = self._path(parameters, "directory", "path", default=".")
        entries = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            stat = entry.stat()
            entries.append({
                "name": entry.name,
                "type": "directory" if entry.is_dir() else "file",
                "size": stat.st_size,
            })
        return {"directory": str(directory), "files": entries, "count": len(entries)}

    def _create_folder(self, parameters: dict[str, Any]) -> dict[str, Any]:
        folder = self._path(parameters, "folderPath", "path")
        folder.mkdir(parents=True, exist_ok=True)
        return {"path": str(folder)}

    def _rename_file(self, parameters: dict[str, Any]) -> dict[str, Any]:
        old = self._path(parameters, "oldPath")
        new = self._path(parameters, "newPath", "newName")
        if new.parent == Path("."):
            new = old.with_name(new.name)
        old.rename(new)
        return {"oldPath": str(old), "newPath": str(new)}

    def _copy_file(self, parameters: dict[str, Any]) -> dict[str, Any]:
        source = self._path(parameters, "source")
        destination = self._path(parameters, "destination")
        if source.is_dir():
            shutil.copytree(source, destination)
        else:
            shutil.copy2(source, destination)
        return {"source": str(source), "destination": str(destination)}

    def _move_file(self, parameters: dict[str, Any]) -> dict[str, Any]:
        source = self._path(parameters, "source")
        destination = self._path(parameters, "destination")
        shutil.move(str(source), str(destination))
        return {"source": str(source), "destination": str(destination)}

    def _delete_file(self, parameters: dict[str, Any]) -> dict[str, Any]:
        target = self._path(parameters, "filePath", "path")
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        return {"path": str(target)}

    def _get_system_info(self, parameters: dict[str, Any]) -> dict[str, Any]:
        return {
            "system": {
                "platform": platform.system(),
                "release": platform.release(),
                "machine": platform.machine(),
                "python": platform.python_version(),
                "cpus": os.cpu_count(),
                "cwd": os.getcwd(),
            }
        }

    async def run(self, context: RunContext) -> dict[str, Any]:
        if not (context.command or context.action):
            raise ToolContextError(
                f"Tool {self.name} requires additional context: action or command"
            )
        parameters = dict(context.parameters or {})
        if context.command:
            return await self.execute_command(context.command, parameters)
        return await self.execute_action(context.action, parameters)
