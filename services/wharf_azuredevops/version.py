"""Build version information, read from the packaged version.yaml."""

from datetime import date
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

VERSION_FILE = Path(__file__).with_name("version.yaml")


class AppVersion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(default="local dev", examples=["v1.0.0"])
    build_git_commit: str = Field(default="HEAD", alias="buildGitCommit")
    build_date: str = Field(default="", alias="buildDate")
    build_ref: int = Field(default=0, alias="buildRef")


def parse_version(text: str) -> AppVersion:
    data = yaml.safe_load(text) or {}
    # unquoted ISO timestamps load as datetime
    cleaned = {
        k: v.isoformat() if isinstance(v, date) else v for k, v in data.items() if v is not None
    }
    return AppVersion.model_validate(cleaned)


@lru_cache(maxsize=1)
def load_version() -> AppVersion:
    text = VERSION_FILE.read_text()
    return parse_version(text)
