from typing import Optional
from pydantic import BaseModel, Field


class GenerationSettings(BaseModel):
    """Settings of the generation service"""

    api_key: Optional[str] = None
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.1-8b-instant"
    max_tool_rounds: int = Field(default=3, ge=0)


class LogSettings(BaseModel):
    """Settings of the console, execution and network logs"""

    level: str = "INFO"
    execution_log_enabled: bool = True
    execution_log_path: str = "logs"
    network_log_path: str = "logs"
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_files: int = Field(default=5, ge=1)


class HistorySettings(BaseModel):
    """Settings of the run history store"""

    enabled: bool = True
    path: str = ".agentflow/history"


class ToolSettings(BaseModel):
    """Settings of the built-in tools"""

    web_search_max_results: int = Field(default=10, ge=1)
    web_search_region: str = "us-en"
    filesystem_root: str = "."
