"""
Repository analyzer: infer stack, architecture and a summary from a repo's
root listing, README and a few key files.

Classification is keyword heuristics. Every table lives in AnalysisRules so
tests can swap them out. Fetches run one at a time; a missing README is the
only tolerated failure. Anything else aborts and nothing is saved.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AnalysisFailedError, RecordNotFoundError, RemoteNotFoundError
from .github import GitHubClient, decode_content
from . import storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurposeRule:
    pattern: str
    purpose: str
    exact: bool = False

    def matches(self, file_name: str) -> bool:
        return file_name == self.pattern if self.exact else self.pattern in file_name


DEFAULT_KEY_FILES = (
    "package.json",
    "requirements.txt",
    "app.js",
    "main.py",
    "index.js",
    "server.js",
)

DEFAULT_PURPOSE_RULES = (
    PurposeRule("package.json", "Project dependencies and configuration", exact=True),
    PurposeRule("requirements.txt", "Python dependencies", exact=True),
    PurposeRule("app.", "Main application entry point"),
    PurposeRule("server.", "Main application entry point"),
    PurposeRule("index.", "Application entry point"),
)

DEFAULT_TECH_MAP = {
    "react": ("react", "jsx", "create-react-app"),
    "node.js": ("node", "express", "npm"),
    "python": ("python", "django", "flask", "pip"),
    "mongodb": ("mongodb", "mongoose"),
    "postgresql": ("postgresql", "postgres", "pg"),
    "javascript": ("javascript", "js"),
    "typescript": ("typescript", "ts"),
    "html": ("html",),
    "css": ("css", "styling"),
    "tailwind": ("tailwind",),
    "bootstrap": ("bootstrap",),
}

# (has_backend, has_frontend) → label
DEFAULT_ARCHITECTURES = {
    (True, True): "Full-stack application",
    (True, False): "Backend API service",
    (False, True): "Frontend application",
    (False, False): "Application project",
}


@dataclass(frozen=True)
class AnalysisRules:
    key_files: tuple[str, ...] = DEFAULT_KEY_FILES
    max_key_files: int = 3
    content_limit: int = 1000
    purpose_rules: tuple[PurposeRule, ...] = DEFAULT_PURPOSE_RULES
    default_purpose: str = "Configuration or main application file"
    tech_map: dict = field(default_factory=lambda: dict(DEFAULT_TECH_MAP))
    backend_markers: tuple[str, ...] = ("server", "app.js", "main.py")
    frontend_technologies: tuple[str, ...] = ("react", "html")
    architectures: dict = field(default_factory=lambda: dict(DEFAULT_ARCHITECTURES))
    summary_min_line: int = 20
    summary_max_chars: int = 200


# ── Pure classification ──────────────────────────────────────────────

def select_key_files(listing: list[dict], rules: AnalysisRules) -> list[dict]:
    """First files in the listing whose name contains an allow-listed name."""
    selected = [
        item for item in listing
        if item.get("type") == "file"
        and any(name in item.get("name", "") for name in rules.key_files)
    ]
    return selected[: rules.max_key_files]


def infer_file_purpose(file_name: str, rules: AnalysisRules) -> str:
    for rule in rules.purpose_rules:
        if rule.matches(file_name):
            return rule.purpose
    return rules.default_purpose


def extract_technologies(key_files: list[dict], readme: str, tech_map: dict) -> list[str]:
    """Technologies whose keywords appear anywhere in the fetched text, in map order."""
    content = (" ".join(f["content"] for f in key_files) + " " + readme).lower()
    return [
        tech for tech, keywords in tech_map.items()
        if any(keyword in content for keyword in keywords)
    ]


def generate_summary(readme: str, key_files: list[dict], rules: AnalysisRules) -> str:
    if readme:
        lines = [line for line in readme.split("\n") if line.strip()]
        for line in lines:
            if not line.startswith("#") and len(line) > rules.summary_min_line:
                return line[: rules.summary_max_chars]

    names = ", ".join(f["name"] for f in key_files)
    return f"Project with {len(key_files)} key files including {names}"


def infer_architecture(key_files: list[dict], technologies: list[str], rules: AnalysisRules) -> str:
    has_backend = any(
        marker in f["name"] for f in key_files for marker in rules.backend_markers
    )
    has_frontend = any(tech in technologies for tech in rules.frontend_technologies)
    return rules.architectures[(has_backend, has_frontend)]


def build_analysis(readme: str, key_files: list[dict], rules: AnalysisRules) -> dict:
    technologies = extract_technologies(key_files, readme, rules.tech_map)
    return {
        "summary": generate_summary(readme, key_files, rules),
        "technologies": technologies,
        "keyFiles": key_files,
        "architecture": infer_architecture(key_files, technologies, rules),
    }


# ── Analyzer ─────────────────────────────────────────────────────────

class RepositoryAnalyzer:
    def __init__(self, github: GitHubClient, rules: AnalysisRules = AnalysisRules()):
        self.github = github
        self.rules = rules

    async def _fetch_readme(self, owner: str, repo: str) -> str:
        try:
            payload = await self.github.get_readme(owner, repo)
        except RemoteNotFoundError:
            logger.warning("No README for %s/%s", owner, repo)
            return ""
        return decode_content(payload)

    async def _fetch_key_files(self, owner: str, repo: str, listing: list[dict]) -> list[dict]:
        key_files = []
        for item in select_key_files(listing, self.rules):
            payload = await self.github.get_content(owner, repo, item["name"])
            if not isinstance(payload, dict) or "content" not in payload:
                continue
            content = decode_content(payload)
            key_files.append({
                "name": item["name"],
                "content": content[: self.rules.content_limit],
                "purpose": infer_file_purpose(item["name"], self.rules),
            })
        return key_files

    async def analyze(self, db: AsyncSession, user_id: str, repo_id: str, full_name: str) -> dict:
        """
        Analyze owner/name and store the result on the repo record.
        Overwrites any previous analysis. Raises AnalysisFailedError on any failure.
        """
        try:
            record = await storage.get_github_repo(db, user_id, repo_id)
            if not record:
                raise RecordNotFoundError("Repository", repo_id)

            owner, _, repo = full_name.partition("/")
            if not owner or not repo:
                raise ValueError(f"Expected 'owner/name', got '{full_name}'")

            listing = await self.github.get_content(owner, repo, "")
            readme = await self._fetch_readme(owner, repo)

            key_files = []
            if isinstance(listing, list):
                key_files = await self._fetch_key_files(owner, repo, listing)

            analysis = build_analysis(readme, key_files, self.rules)
            await storage.update_github_repo_analysis(db, repo_id, analysis)

            logger.info(
                "Analyzed %s: %s, %d technologies, %d key files",
                full_name, analysis["architecture"], len(analysis["technologies"]), len(key_files),
            )
            return analysis

        except Exception as e:
            logger.error("Repository analysis failed for %s: %s", full_name, e)
            raise AnalysisFailedError(detail=str(e)) from e
