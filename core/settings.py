import os
from dataclasses import dataclass, fields


def _env(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return cast(raw)


@dataclass(frozen=True)
class Settings:
    """
    Runtime tuning for one harvester process.
    Every field can be overridden with HARVESTER_<FIELD_NAME> in the environment.
    """
    listing_timeout: float = 20.0
    article_timeout: float = 20.0
    render_timeout: float = 45.0
    render_wait_timeout: float = 15.0
    min_content_length: int = 20
    max_content_length: int = 8000
    candidate_delay: float = 0.05  # Pause between listing-page candidates
    source_concurrency: int = 5
    article_concurrency: int = 5
    fetch_retries: int = 3
    db_path: str = "articles.db"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        for f in fields(cls):
            cast = type(f.default)
            values[f.name] = _env(f"HARVESTER_{f.name.upper()}", f.default, cast)
        return cls(**values)
