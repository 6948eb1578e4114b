"""Pydantic models for the symbol-context server protocol."""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class SerenaMode(str, Enum):
    """When to use symbol-level context."""

    OFF = "off"  # Never start the server
    AUTO = "auto"  # Use it when installed
    ON = "on"  # Required; fail when missing

    @classmethod
    def parse(cls, value: "SerenaMode | str") -> "SerenaMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.AUTO


class SymbolInfo(BaseModel):
    """A code symbol (function, class, method) enclosing some line."""

    name: str = Field(default="", validation_alias=AliasChoices("name", "Name"))
    kind: str = Field(default="", validation_alias=AliasChoices("kind", "Kind"))
    file_path: str = Field(
        default="", validation_alias=AliasChoices("file_path", "filePath", "FilePath")
    )
    start_line: int = Field(
        default=0, validation_alias=AliasChoices("start_line", "startLine", "StartLine")
    )
    end_line: int = Field(
        default=0, validation_alias=AliasChoices("end_line", "endLine", "EndLine")
    )
    content: str = Field(
        default="", validation_alias=AliasChoices("content", "body", "Content")
    )


class JsonRpcError(BaseModel):
    code: int
    message: str


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | None = None
    result: Any = None
    error: JsonRpcError | None = None


class ToolContent(BaseModel):
    type: str = "text"
    text: str = ""


class ToolCallResult(BaseModel):
    """Result payload of an MCP ``tools/call`` request."""

    content: list[ToolContent] = Field(default_factory=list)
