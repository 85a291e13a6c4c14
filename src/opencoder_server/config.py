"""Configuration module for opencoder-server using pydantic-settings."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant with access to multiple powerful tools. "
    "You can use file operations tools to read, write, search, and manage files, "
    "as well as terminal command tools to execute system commands. Always use the "
    "appropriate tools when they would help provide accurate information, and "
    "think step by step when using tools."
)


class McpServerSettings(BaseModel):
    """An MCP capability provider started as a stdio subprocess."""

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None
    startup_timeout: float = 30.0


class OpenCoderSettings(BaseSettings):
    """Main configuration settings for opencoder-server.

    All settings can be overridden via environment variables with the OPENCODER_
    prefix. For example, OPENCODER_OLLAMA_HOST will override the ollama_host setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Ollama
    ollama_host: str = "http://localhost:11434"
    model: str = "qwen3:8b"

    # Data directories (relative to data_dir)
    data_dir: str = "."
    tools_dir: str = "tools"

    # Conversations
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Capabilities
    user_id: str = "user123"
    capability_timeout: float | None = 60.0
    max_capability_rounds: int | None = 25
    strict_capability_names: bool = False
    # JSON list, e.g. [{"name": "files", "command": "files-cli", "args": ["--root", "."]}]
    mcp_servers: list[McpServerSettings] = Field(default_factory=list)

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="OPENCODER_")

    @property
    def resolved_tools_dir(self) -> Path:
        """Get the full path to the tools directory."""
        return Path(self.data_dir) / self.tools_dir
