"""GitHub-backed project listing: fetch a snapshot once, render it on every build."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import Config
from .output import SectionResult, write_text
from .remote import FetchError, get_json
from .templates import PageRenderer

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class SnapshotError(RuntimeError):
    """Raised when the projects snapshot is missing or unreadable."""


class Project(BaseModel):
    """A single repository as shown on the projects page."""

    description: str = ""
    source_code_url: str
    website_url: Optional[str] = None
    documentation_url: Optional[str] = None
    creation_date: dt.datetime
    last_update: dt.datetime
    image_url: Optional[str] = None
    language: Optional[str] = None
    topics: list[str] = Field(default_factory=list)

    @property
    def main_link(self) -> str:
        return self.website_url or self.source_code_url


class ProjectsSnapshot(BaseModel):
    """Every fetched project plus the single time the batch was fetched."""

    projects: dict[str, Project] = Field(default_factory=dict)
    last_fetched: dt.datetime


class GithubRepository(BaseModel):
    """The subset of the GitHub repository payload folio uses."""

    model_config = ConfigDict(extra="ignore")

    name: str
    html_url: str
    description: Optional[str] = None
    created_at: dt.datetime
    pushed_at: dt.datetime
    homepage: Optional[str] = None
    language: Optional[str] = None
    topics: list[str] = Field(default_factory=list)

    @field_validator("homepage", "description", mode="before")
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def fetch_project(
    name: str,
    *,
    owner: str,
    client: httpx.Client,
    token: str | None = None,
    api_url: str = GITHUB_API_URL,
) -> tuple[str, Project]:
    """Fetch one repository and return its canonical name with the project record."""
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    payload = get_json(client, f"{api_url}/repos/{owner}/{name}", headers=headers)
    try:
        repo = GithubRepository.model_validate(payload)
    except ValidationError as exc:
        raise FetchError(f"Unexpected GitHub response for {owner}/{name}: {exc}") from exc

    project = Project(
        description=repo.description or "",
        source_code_url=repo.html_url,
        website_url=repo.homepage,
        creation_date=repo.created_at,
        last_update=repo.pushed_at,
        language=repo.language,
        topics=list(repo.topics),
    )
    return repo.name, project


def fetch_projects(
    names: Iterable[str],
    *,
    owner: str,
    client: httpx.Client,
    token: str | None = None,
    api_url: str = GITHUB_API_URL,
    previous: ProjectsSnapshot | None = None,
    now: dt.datetime | None = None,
) -> ProjectsSnapshot:
    """Fetch every project in ``names`` into a fresh snapshot.

    Any failure aborts the whole batch; snapshots are never partially refreshed.
    Hand-edited ``image_url`` and ``documentation_url`` values from ``previous``
    are carried over.
    """
    projects: dict[str, Project] = {}
    for name in names:
        canonical, project = fetch_project(name, owner=owner, client=client, token=token, api_url=api_url)
        if previous is not None and canonical in previous.projects:
            curated = previous.projects[canonical]
            project = project.model_copy(
                update={
                    "image_url": curated.image_url,
                    "documentation_url": curated.documentation_url,
                }
            )
        projects[canonical] = project
        logger.info("Fetched %s/%s", owner, canonical)
    return ProjectsSnapshot(projects=projects, last_fetched=now or dt.datetime.now(dt.timezone.utc))


def load_snapshot(path: Path) -> ProjectsSnapshot:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SnapshotError(f"Projects snapshot not found at {path}; run 'folio fetch-projects' first.") from exc
    try:
        return ProjectsSnapshot.model_validate_json(raw)
    except ValidationError as exc:
        raise SnapshotError(f"Projects snapshot {path} is invalid: {exc}") from exc


def save_snapshot(snapshot: ProjectsSnapshot, path: Path) -> Path:
    return write_text(path, snapshot.model_dump_json(indent=2) + "\n")


def generate_projects_page(config: Config, renderer: PageRenderer) -> SectionResult:
    snapshot = load_snapshot(config.projects.snapshot_path)
    result = SectionResult(section="projects", entries=len(snapshot.projects))
    result.pages.append(
        renderer.render_page(
            config.output_dir,
            "projects/",
            "projects.html",
            projects=list(snapshot.projects.items()),
            last_fetched=snapshot.last_fetched,
            owner=config.projects.owner,
        )
    )
    return result
