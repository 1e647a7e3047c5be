"""Built-in coding tools: file reading, directory listing, shell, file editing and code search."""

import json
import os
import subprocess
from pathlib import Path
from typing import List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from codepilot.core.logger import Logger
from codepilot.tools import (
    ToolDefinition,
    ToolExecutionError,
    ToolRegistry,
)

MAX_SEARCH_MATCHES = 50


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------
class ReadFileInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = Field(..., description="The relative path of a file in the working directory.")


class ListFilesInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = Field(
        "",
        description="Optional relative path to list files from. Defaults to current directory if not provided.",
    )


class BashInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    command: str = Field(..., description="The bash command to execute.")


class EditFileInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = Field(..., description="The path to the file")
    old_str: str = Field(
        ...,
        description="Text to search for - must match exactly and must only have one match exactly",
    )
    new_str: str = Field(..., description="Text to replace old_str with")


class CodeSearchInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pattern: str = Field(..., description="The search pattern or regex to look for")
    path: str = Field("", description="Optional path to search in (file or directory)")
    file_type: str = Field(
        "", description="Optional file extension to limit search to (e.g., 'go', 'js', 'py')"
    )
    case_sensitive: bool = Field(
        False, description="Whether the search should be case sensitive (default: false)"
    )


# ---------------------------------------------------------------------------
# Tool bodies
# ---------------------------------------------------------------------------
def read_file(args: ReadFileInput, log: Logger) -> str:
    log.debug("Reading file: %s", args.path)
    try:
        content = Path(args.path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        log.error("Failed to read file %s: %s", args.path, exc)
        raise ToolExecutionError(str(exc)) from exc
    log.debug("Successfully read file %s (%d chars)", args.path, len(content))
    return content


def list_files(args: ListFilesInput, log: Logger) -> str:
    root = args.path or "."
    log.debug("Listing files in directory: %s", root)
    if not os.path.isdir(root):
        log.error("Failed to list files in %s: not a directory", root)
        raise ToolExecutionError(f"not a directory: {root}")

    files: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        rel_dir = os.path.relpath(dirpath, root)
        for dirname in dirnames:
            files.append(Path(rel_dir, dirname).as_posix() + "/")
        for filename in sorted(filenames):
            files.append(Path(rel_dir, filename).as_posix())

    files.sort()
    log.debug("Successfully listed %d items in %s", len(files), root)
    return json.dumps(files)


def bash(args: BashInput, log: Logger) -> str:
    log.debug("Executing bash command: %s", args.command)
    proc = subprocess.run(
        ["bash", "-c", args.command],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        check=False,
    )
    if proc.returncode != 0:
        # A failing command is a normal observation for the model, not a tool failure.
        log.warning("Bash command failed: %s, exit status %d", args.command, proc.returncode)
        return f"Command failed with error: exit status {proc.returncode}\nOutput: {proc.stdout}"

    log.debug("Bash command succeeded: %s (output: %d chars)", args.command, len(proc.stdout))
    return proc.stdout.strip()


def _create_new_file(path: Path, content: str, log: Logger) -> str:
    log.debug("Creating new file: %s (%d chars)", path, len(content))
    try:
        if str(path.parent) not in ("", "."):
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        log.error("Failed to write file %s: %s", path, exc)
        raise ToolExecutionError(f"failed to write file: {exc}") from exc
    return f"Successfully created file {path}"


def edit_file(args: EditFileInput, log: Logger) -> str:
    if not args.path or args.old_str == args.new_str:
        log.error("EditFile failed: invalid input parameters")
        raise ToolExecutionError("invalid input parameters")

    path = Path(args.path)
    log.debug(
        "Editing file: %s (replacing %d chars with %d chars)",
        path,
        len(args.old_str),
        len(args.new_str),
    )
    if not path.exists():
        if args.old_str == "":
            return _create_new_file(path, args.new_str, log)
        log.error("EditFile failed: %s does not exist", path)
        raise ToolExecutionError(f"file not found: {path}")

    old_content = path.read_text(encoding="utf-8")
    if args.old_str == "":
        new_content = old_content + args.new_str
    else:
        count = old_content.count(args.old_str)
        if count == 0:
            log.error("EditFile failed: old_str not found in file %s", path)
            raise ToolExecutionError("old_str not found in file")
        if count > 1:
            log.error("EditFile failed: old_str found %d times in file %s", count, path)
            raise ToolExecutionError(f"old_str found {count} times in file, must be unique")
        new_content = old_content.replace(args.old_str, args.new_str, 1)

    try:
        path.write_text(new_content, encoding="utf-8")
    except OSError as exc:
        log.error("Failed to write file %s: %s", path, exc)
        raise ToolExecutionError(str(exc)) from exc

    log.debug("Successfully edited file %s", path)
    return "OK"


def code_search(args: CodeSearchInput, log: Logger) -> str:
    if not args.pattern:
        log.error("CodeSearch failed: pattern is required")
        raise ToolExecutionError("pattern is required")

    cmd = ["rg", "--line-number", "--with-filename", "--color=never"]
    if not args.case_sensitive:
        cmd.append("--ignore-case")
    if args.file_type:
        cmd.extend(["--type", args.file_type])
    cmd.extend([args.pattern, args.path or "."])
    log.debug("Executing ripgrep with args: %s", cmd)

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, errors="replace", check=False)
    except FileNotFoundError as exc:
        log.error("Ripgrep is not installed")
        raise ToolExecutionError("search failed: ripgrep (rg) is not installed") from exc

    # rg exits with 1 when nothing matched
    if proc.returncode == 1:
        log.debug("No matches found for pattern: %s", args.pattern)
        return "No matches found"
    if proc.returncode != 0:
        log.error("Ripgrep command failed: %s", proc.stderr.strip())
        raise ToolExecutionError(f"search failed: {proc.stderr.strip()}")

    lines = proc.stdout.strip().split("\n")
    log.debug("Found %d matches for pattern: %s", len(lines), args.pattern)
    if len(lines) > MAX_SEARCH_MATCHES:
        shown = "\n".join(lines[:MAX_SEARCH_MATCHES])
        return f"{shown}\n... (showing first {MAX_SEARCH_MATCHES} of {len(lines)} matches)"
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------
BUILTIN_TOOLS: List[ToolDefinition] = [
    ToolDefinition(
        name="read_file",
        description=(
            "Read the contents of a given relative file path. Use this when you want to see "
            "what's inside a file. Do not use this with directory names."
        ),
        input_model=ReadFileInput,
        function=read_file,
    ),
    ToolDefinition(
        name="list_files",
        description=(
            "List files and directories at a given path. If no path is provided, lists files "
            "in the current directory."
        ),
        input_model=ListFilesInput,
        function=list_files,
    ),
    ToolDefinition(
        name="bash",
        description="Execute a bash command and return its output. Use this to run shell commands.",
        input_model=BashInput,
        function=bash,
    ),
    ToolDefinition(
        name="edit_file",
        description=(
            "Make edits to a text file. Replace 'old_str' with 'new_str' in the given file. "
            "'old_str' and 'new_str' MUST be different from each other. If the file specified "
            "with path doesn't exist, it will be created."
        ),
        input_model=EditFileInput,
        function=edit_file,
    ),
    ToolDefinition(
        name="code_search",
        description=(
            "Search for code patterns using ripgrep (rg). Use this to find code patterns, "
            "function definitions, variable usage, or any text in the codebase. You can search "
            "by pattern, file type, or directory."
        ),
        input_model=CodeSearchInput,
        function=code_search,
    ),
]


def register_builtin_tools(registry: ToolRegistry, log: Logger) -> None:
    """Register every built-in tool on *registry*."""
    for definition in BUILTIN_TOOLS:
        try:
            registry.register(definition)
        except Exception:
            log.error("Failed to register tool %s", definition.name)
            raise
        log.debug("Registered tool: %s", definition.name)
    log.info("Registered %d built-in tools", len(BUILTIN_TOOLS))
