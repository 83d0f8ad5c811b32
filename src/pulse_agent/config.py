"""Configuration helpers for the pulse agent."""

from typing import Dict, List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    composer_model: str = Field(
        "gpt-5-mini", description="Model used to draft newsletters, blogs, and idea pitches."
    )
    max_tokens: int = Field(
        2400,
        description=(
            "Max output tokens per deliverable; set to 0 to remove the cap."
        ),
    )
    temperature: float = Field(0.7, description="Generation temperature.")
    signal_search_url: str = Field(
        "https://hn.algolia.com/api/v1/search_by_date",
        description="Hacker News Algolia search endpoint used for the signal sweep.",
    )
    max_signals: int = Field(10, description="Upper bound on signals handed to the composer.")
    signals_per_query: int = Field(30, description="hitsPerPage requested from each query.")
    collection_timeout: float = Field(
        10.0, description="Total seconds allowed for the signal sweep before it degrades."
    )
    request_timeout: float = Field(6.0, description="Seconds allowed per upstream signal call.")
    generation_timeout: float = Field(
        90.0, description="Total seconds allowed for composing all deliverables."
    )
    ranking_gravity: float = Field(
        1.8, description="Recency decay exponent applied to engagement when ranking signals."
    )
    log_level: str = Field("INFO", description="Root log level for pulse_agent loggers.")
    log_file: str | None = Field(None, description="Optional file that mirrors console logs.")


def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # pydantic settings cache internally


class TopicPreset(BaseModel):
    label: str
    topic: str
    notes: str


class BriefDefaults(BaseModel):
    """
    Defaults and option catalogues applied to incoming briefs.

    Injected into the normalizer and composer so deployments (and tests) can
    swap them without touching module state.
    """

    topic: str = "emerging technology"
    tone: str = "Analytical"
    audience: str = "General readership"
    cadence: str = "Weekly Pulse"
    writing_style: str = "Editorial"
    include_newsletter: bool = True
    include_blog: bool = True
    extra_notes: str = ""
    focus_region: str = "Global"

    tones: List[str] = ["Analytical", "Optimistic", "Candid", "Urgent", "Story-driven"]
    cadences: List[str] = ["Weekly Pulse", "Bi-weekly Deep Dive", "Monthly Flagship"]
    styles: List[str] = ["Concise", "Editorial", "Narrative", "Playful", "Investor Update"]
    regions: List[str] = ["Global", "United States", "Europe", "Asia-Pacific", "Latin America"]
    presets: List[TopicPreset] = [
        TopicPreset(
            label="AI Research",
            topic="frontier AI safety and regulation",
            notes=(
                "Highlight model evaluations, governance moves, and implications "
                "for enterprise teams."
            ),
        ),
        TopicPreset(
            label="Climate Tech",
            topic="latest climate tech funding rounds",
            notes="Spotlight moonshot solutions and chart policy developments across EU & US.",
        ),
        TopicPreset(
            label="Consumer Apps",
            topic="trending consumer social products",
            notes="Analyze retention hooks and monetization signals for early-stage founders.",
        ),
    ]

    # Cadence -> lookback window in days; unknown cadences use the fallback.
    cadence_windows: Dict[str, int] = {
        "Weekly Pulse": 7,
        "Bi-weekly Deep Dive": 14,
        "Monthly Flagship": 30,
    }
    fallback_window_days: int = 7

    def window_days(self, cadence: str) -> int:
        return self.cadence_windows.get(cadence, self.fallback_window_days)


DEFAULT_BRIEF_DEFAULTS = BriefDefaults()
