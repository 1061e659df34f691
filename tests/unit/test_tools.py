"""Tests for the tool registry and the built-in tools."""

from __future__ import annotations

import json
import sys

import httpx
import pytest

from cadre.core.errors import UpstreamError, ValidationError
from cadre.models.task import RunContext
from cadre.tools.base import ToolRegistry, failure
from cadre.tools.computer_use import ComputerUseTool
from cadre.tools.file_search import FileSearchTool, read_document, search_text
from cadre.tools.web_search import WebSearchTool, parse_instant_answer

INSTANT_ANSWER = {
    "Abstract": "Python is a programming language.",
    "AbstractSource": "Wikipedia",
    "AbstractURL": "https://en.wikipedia.org/wiki/Python",
    "RelatedTopics": [
        {"Text": "CPython - reference implementation", "FirstURL": "https://duckduckgo.com/CPython"},
        {
            "Name": "Libraries",
            "Topics": [
                {"Text": "NumPy - arrays", "FirstURL": "https://duckduckgo.com/NumPy"},
                {"Text": "pandas - dataframes", "FirstURL": "https://duckduckgo.com/pandas"},
            ],
        },
        {"Text": "", "FirstURL": "https://duckduckgo.com/empty"},
    ],
}


class TestToolRegistry:
    @pytest.mark.asyncio
    async def test_dispatch_unknown_tool(self):
        result = await ToolRegistry().dispatch("teleport", RunContext())
        assert result["success"] is False
        assert result["error"] == "Tool not found: teleport"
        assert result["tool"] == "teleport"

    @pytest.mark.asyncio
    async def test_dispatch_catches_raising_tool(self):
        class Raw:
            name = "raw"

            async def invoke(self, context):
                raise RuntimeError("no boundary")

        registry = ToolRegistry()
        registry.register(Raw())
        result = await registry.dispatch("raw", RunContext())
        assert result["success"] is False
        assert result["error"] == "no boundary"

    @pytest.mark.asyncio
    async def test_dispatch_wraps_non_dict(self):
        class Plain:
            name = "plain"

            async def invoke(self, context):
                return "text output"

        registry = ToolRegistry()
        registry.register(Plain(), name="alias")
        assert "alias" in registry and "plain" not in registry
        result = await registry.dispatch("alias", RunContext())
        assert result == {"success": True, "tool": "alias", "output": "text output"}

    def test_register_and_unregister(self, tool_registry: ToolRegistry):
        assert tool_registry.names() == ["echo", "exploding"]
        tool_registry.unregister("echo")
        tool_registry.unregister("echo")
        assert len(tool_registry) == 1
        assert tool_registry.get("echo") is None

    def test_failure_record(self):
        record = failure("web_search", ValueError())
        assert record["success"] is False
        assert record["error"] == "ValueError"
        assert record["timestamp"]


class TestFileSearch:
    def test_search_text_context_and_lines(self):
        content = "alpha\nbeta Gamma\ngamma delta"
        search = search_text(content, "gamma", context_length=3)
        assert search["totalMatches"] == 2
        first, second = search["matches"]
        assert first["match"] == "Gamma"
        assert first["lineNumber"] == 2
        assert first["context"] == "ta Gamma\nga"
        assert second["lineNumber"] == 3

    def test_search_text_options(self):
        content = "cat catalog Cat"
        assert search_text(content, "cat", case_sensitive=True)["totalMatches"] == 2
        assert search_text(content, "cat", whole_word=True)["totalMatches"] == 2
        assert search_text(content, "cat", max_results=1)["totalMatches"] == 1

    def test_search_text_literal_metacharacters(self):
        assert search_text("cost is $5 (approx.)", "(approx.)")["totalMatches"] == 1

    def test_read_document_errors(self, tmp_path):
        with pytest.raises(ValidationError, match="File not found"):
            read_document(tmp_path / "missing.txt", [".txt"])
        binary = tmp_path / "image.png"
        binary.write_bytes(b"\x89PNG")
        with pytest.raises(ValidationError, match="Unsupported file format: .png"):
            read_document(binary, [".txt"])

    def test_read_document_pretty_prints_json(self, tmp_path):
        doc = tmp_path / "data.json"
        doc.write_text('{"a":1}')
        assert read_document(doc, [".json"]) == '{\n  "a": 1\n}'

    @pytest.mark.asyncio
    async def test_run_returns_matches_and_answer(self, tmp_path, make_client):
        doc = tmp_path / "notes.md"
        doc.write_text("# Notes\nThe deadline is Friday.\n")
        client = make_client(["Friday."])
        tool = FileSearchTool({}, client=client)

        result = await tool.invoke(RunContext(file_path=str(doc), query="deadline"))

        assert result["success"] is True
        assert result["file"]["name"] == "notes.md"
        assert result["search"]["totalMatches"] == 1
        assert result["preview"].startswith("# Notes")
        assert result["answer"] == "Friday."
        assert "notes.md" in client.calls[0][0][1].content

    @pytest.mark.asyncio
    async def test_run_without_answer_on_upstream_failure(self, tmp_path, make_client):
        doc = tmp_path / "notes.txt"
        doc.write_text("needle")
        tool = FileSearchTool({}, client=make_client(error=UpstreamError("down")))
        result = await tool.invoke(RunContext(file_path=str(doc), query="needle"))
        assert result["success"] is True
        assert "answer" not in result

    @pytest.mark.asyncio
    async def test_run_requires_context(self):
        result = await FileSearchTool().invoke(RunContext(query="x"))
        assert result["success"] is False
        assert "file_path" in result["error"]


class TestComputerUse:
    @pytest.fixture
    def tool(self) -> ComputerUseTool:
        return ComputerUseTool({"blocked_commands": ["rm -rf", "shutdown"], "command_timeout_seconds": 5})

    def test_blocked_commands(self, tool):
        assert not tool.is_safe_command("sudo RM -RF /")
        assert not tool.is_safe_command("shutdown now")
        assert tool.is_safe_command("ls -la")

    @pytest.mark.asyncio
    async def test_blocked_command_rejected(self, tool):
        result = await tool.invoke(RunContext(command="rm -rf /tmp/x"))
        assert result["success"] is False
        assert result["error"] == "Command not allowed for security reasons"

    @pytest.mark.asyncio
    async def test_command_output(self, tool):
        command = f'"{sys.executable}" -c "print(42)"'
        result = await tool.invoke(RunContext(command=command))
        assert result["success"] is True
        assert result["exitCode"] == 0
        assert result["output"].strip() == "42"

    @pytest.mark.asyncio
    async def test_command_timeout(self, tool):
        command = f'"{sys.executable}" -c "import time; time.sleep(30)"'
        result = await tool.invoke(RunContext(command=command, parameters={"timeout": 0.5}))
        assert result["success"] is False
        assert result["error"] == "Command timed out after 0.5s"

    @pytest.mark.asyncio
    async def test_requires_action_or_command(self, tool):
        result = await tool.invoke(RunContext())
        assert result["success"] is False
        assert "action or command" in result["error"]

    @pytest.mark.asyncio
    async def test_unknown_action(self, tool):
        result = await tool.invoke(RunContext(action="format_disk"))
        assert result["error"] == "Unknown action: format_disk"

    @pytest.mark.asyncio
    async def test_file_actions(self, tool, tmp_path):
        folder = tmp_path / "work"
        created = await tool.invoke(RunContext(action="create_folder", parameters={"folderPath": str(folder)}))
        assert created["success"] and folder.is_dir()

        (folder / "a.txt").write_text("hello")
        await tool.invoke(RunContext(
            action="copy_file",
            parameters={"source": str(folder / "a.txt"), "destination": str(folder / "b.txt")},
        ))
        await tool.invoke(RunContext(
            action="rename_file", parameters={"oldPath": str(folder / "b.txt"), "newName": "c.txt"}
        ))
        listing = await tool.invoke(RunContext(action="LIST_FILES", parameters={"directory": str(folder)}))
        assert listing["action"] == "list_files"
        assert [f["name"] for f in listing["files"]] == ["a.txt", "c.txt"]

        await tool.invoke(RunContext(
            action="move_file",
            parameters={"source": str(folder / "c.txt"), "destination": str(tmp_path / "c.txt")},
        ))
        deleted = await tool.invoke(RunContext(action="delete_file", parameters={"filePath": str(folder)}))
        assert deleted["success"]
        assert not folder.exists()
        assert (tmp_path / "c.txt").read_text() == "hello"

    @pytest.mark.asyncio
    async def test_missing_parameter(self, tool):
        result = await tool.invoke(RunContext(action="delete_file"))
        assert result["error"] == "Missing parameter: filePath"

    @pytest.mark.asyncio
    async def test_system_info(self, tool):
        result = await tool.invoke(RunContext(action="get_system_info"))
        assert result["system"]["cpus"]


class TestWebSearch:
    def test_parse_nested_topics(self):
        results = parse_instant_answer(INSTANT_ANSWER, max_results=10)
        assert [r["title"] for r in results] == ["Wikipedia", "CPython", "NumPy", "pandas"]
        assert results[0]["url"] == "https://en.wikipedia.org/wiki/Python"

    def test_parse_respects_limit(self):
        assert len(parse_instant_answer(INSTANT_ANSWER, max_results=2)) == 2

    @pytest.mark.asyncio
    async def test_run_with_synthesis(self, make_client):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["q"] = request.url.params["q"]
            return httpx.Response(200, content=json.dumps(INSTANT_ANSWER))

        client = make_client(["Python is a language."])
        tool = WebSearchTool({"max_results": 3}, client=client, transport=httpx.MockTransport(handler))

        result = await tool.invoke(RunContext(query="python"))

        assert seen["q"] == "python"
        assert result["success"] is True
        assert len(result["results"]) == 3
        assert result["synthesis"] == {"answer": "Python is a language.", "sourcesUsed": 3, "confidence": "high"}

    @pytest.mark.asyncio
    async def test_synthesis_failure_is_low_confidence(self, make_client):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=INSTANT_ANSWER))
        tool = WebSearchTool({}, client=make_client(error=UpstreamError("down")), transport=transport)
        result = await tool.invoke(RunContext(query="python"))
        assert result["success"] is True
        assert result["synthesis"]["confidence"] == "low"

    @pytest.mark.asyncio
    async def test_http_error_is_failure_record(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        tool = WebSearchTool({"synthesize": False}, transport=transport)
        result = await tool.invoke(RunContext(query="python"))
        assert result["success"] is False
        assert result["error"] == "Search request failed: 503"

    @pytest.mark.asyncio
    async def test_requires_query(self):
        result = await WebSearchTool().invoke(RunContext())
        assert "requires additional context: query" in result["error"]
