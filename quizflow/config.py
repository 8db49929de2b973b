from pathlib import Path
from typing import Dict, Any
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUIZFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Document Source Configuration
    base_url: str = Field(default="")
    fetch_timeout: float = Field(default=30.0)
    questions_file: str = Field(default="questions.json")
    strings_file: str = Field(default="strings.json")
    results_file: str = Field(default="results.json")

    # Layout Configuration
    node_width: float = Field(default=172)
    node_height: float = Field(default=36)
    question_extra_height: float = Field(default=1500)
    rank_separation: float = Field(default=100)
    node_separation: float = Field(default=200)
    layout_direction: str = Field(default="TB")
    ordering_sweeps: int = Field(default=4)

    # Editor Configuration
    auto_layout_on_connect: bool = Field(default=False)
    question_spacing: float = Field(default=450)
    question_row: float = Field(default=100)
    focus_zoom: float = Field(default=2.0)
    default_edge_stroke: str = Field(default="#b1b1b7")
    edge_styles: Dict[str, Dict[str, Any]] = Field(
        default_factory=lambda: {
            "newOption": {"stroke": "#e91e63"},
            "grey": {"stroke": "#9e9e9e"},
        }
    )

    # API Configuration
    api_host: str = Field(default="localhost")
    api_port: int = Field(default=8000)
    # Empty keeps the edited graph in memory only
    graph_storage_path: str = Field(default="")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/quizflow.log")

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        return Path(self.log_file).parent

    def ensure_directories(self):
        """Ensure necessary directories exist."""
        if self.log_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()
