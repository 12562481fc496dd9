import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# Qualification frameworks and the fields each note is expected to fill in
FRAMEWORKS = ["Qual-LTS", "Qual-LSS", "VEF", "MEDDPICC", "BANT", "LicenseDemandPlan"]

FRAMEWORK_FIELDS: Dict[str, List[str]] = {
    "MEDDPICC": [
        "Metrics",
        "Economic Buyer",
        "Decision Criteria",
        "Decision Process",
        "Paper Process",
        "Identified Pain",
        "Champion",
        "Competition",
    ],
    "VEF": [
        "Customer's Pressures",
        "Customer's Objectives",
        "Customer's Challenges",
        "LinkedIn's Solutions",
        "LinkedIn's Experience",
        "LinkedIn's Unique Value",
    ],
    "BANT": ["Budget", "Authority", "Need", "Timeline"],
    "Qual-LTS": [
        "Overall Impression of Opportunity",
        "First Impressions of POC/Lead",
        "General Company Info",
        "Nº of Employees",
        "Knowledge about LinkedIn",
    ],
    "Qual-LSS": [
        "Date",
        "Account Name",
        "Attendees",
        "Sales Org Structure",
        "Ideal Buyer personas",
        "Total Addressable Market",
        "CRM",
        "Other Sales Systems & Tools",
        "Sales Process",
        "Average Deal Size",
        "Average Sales Cycle",
        "Sales Navigator Use Cases",
    ],
}

# Relative importance of each framework in the coverage sub-score (sums to 1.0)
FRAMEWORK_WEIGHTS: Dict[str, float] = {
    "MEDDPICC": 0.4,
    "VEF": 0.3,
    "BANT": 0.15,
    "Qual-LTS": 0.075,
    "Qual-LSS": 0.075,
}

# Readiness flags are read from this framework's note
PRIMARY_FRAMEWORK = "MEDDPICC"
READINESS_FIELDS: Dict[str, str] = {
    "economic_buyer": "Economic Buyer",
    "champion": "Champion",
    "pain_explicit": "Identified Pain",
    "decision_process": "Decision Process",
    "decision_criteria": "Decision Criteria",
    "paper_process": "Paper Process",
}

# Markers the note generator writes when a field was not discussed
UNKNOWN_MARKERS = ["Unknown (not mentioned)", "Not mentioned"]

# Top-level sub-score weights (sums to 1.0)
SUBSCORE_WEIGHTS: Dict[str, float] = {
    "coverage": 0.5,
    "quality": 0.3,
    "recency": 0.1,
    "task_progress": 0.1,
}

# Label bands, inclusive on the lower bound
HEALTHY_THRESHOLD = 80
WATCHLIST_THRESHOLD = 50

HEALTH_LABELS = ["Healthy", "Watchlist", "At Risk"]

RECENCY_DECAY_DAYS = 30.0
TASK_WINDOW_DAYS = 30

# Oracle prompt limits
TRANSCRIPT_EXCERPT_CHARS = 2000
NOTE_SUMMARY_CHARS = 500

ACTION_ITEM_STATUSES = ["Open", "In Progress", "Completed", "Overdue"]
COMPLETED_STATUS = "Completed"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings read from the environment (via .env).

    Scoring policy lives in the module constants above; this only covers
    knobs that differ between deployments.
    """

    openai_api_key: str
    llm_model: str
    llm_temperature: float
    llm_max_tokens: int
    oracle_timeout_seconds: float
    use_llm: bool
    bulk_concurrency: int
    data_dir: Path
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            llm_model=os.getenv("DEFAULT_LLM_MODEL", "gpt-4o-mini"),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0.1")),
            llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", "500")),
            oracle_timeout_seconds=float(os.getenv("ORACLE_TIMEOUT_SECONDS", "30")),
            use_llm=_env_bool("HEALTH_USE_LLM", True),
            bulk_concurrency=max(1, int(os.getenv("HEALTH_BULK_CONCURRENCY", "1"))),
            data_dir=Path(os.getenv("HEALTH_DATA_DIR", "data/accounts")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return settings derived from the current environment."""
    return Settings.from_env()
