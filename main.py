# Copyright (C) 2025 Fabian Valle-simmons
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import quote
from fastapi import APIRouter, FastAPI, Request, Form, HTTPException, Depends
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from config import Settings
from services import (
    GitHubFetcher, AIExplainer, Role, ROLE_LABELS, parse_conversation, parse_role,
    INVALID_ROLE_MESSAGE, SERVER_ERROR_MESSAGE, NO_SUMMARY_MESSAGE,
)
from browser import RepositoryBrowser
from workspace import RepoSession
from tree import TreeCollisionError

logger = logging.getLogger(__name__)

SESSION_COOKIE = "explainify_session"

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

# Add custom Jinja2 filter for URL encoding paths
def urlencode_path(path: str) -> str:
    """URL encode a file path, encoding each segment separately"""
    if not path:
        return ""
    segments = path.replace('\\', '/').split('/')
    return '/'.join(quote(segment, safe='') for segment in segments)

templates.env.filters['urlencode_path'] = urlencode_path

router = APIRouter()


class UserSession:
    """Client-side state for one browser: the profile browser and every opened repository."""

    def __init__(self, browser: RepositoryBrowser):
        self.browser = browser
        self.repos: Dict[str, RepoSession] = {}


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_github_fetcher(request: Request) -> GitHubFetcher:
    settings = get_settings(request)
    return GitHubFetcher(settings.github_token, api_url=settings.github_api_url, raw_url=settings.github_raw_url)

def get_ai_explainer(request: Request) -> AIExplainer:
    settings = get_settings(request)

    if settings.uses_azure:
        logger.info(f"🔹 Using Azure OpenAI Service (Deployment: {settings.azure_deployment_name})")
        return AIExplainer(
            api_key=settings.azure_openai_key,
            base_url=settings.azure_openai_url,
            is_azure=True,
            model=settings.azure_deployment_name,
            api_version=settings.azure_openai_api_version
        )

    return AIExplainer(settings.openai_api_key, base_url=settings.openai_base_url, model=settings.openai_model)

def get_user_session(
    request: Request,
    fetcher: GitHubFetcher = Depends(get_github_fetcher),
    explainer: AIExplainer = Depends(get_ai_explainer)
) -> UserSession:
    sessions: Dict[str, UserSession] = request.app.state.sessions
    session_id = request.cookies.get(SESSION_COOKIE)

    if session_id not in sessions:
        session_id = uuid.uuid4().hex
        settings = get_settings(request)
        browser = RepositoryBrowser(fetcher, explainer, debounce_seconds=settings.debounce_seconds, page_size=settings.page_size)
        sessions[session_id] = UserSession(browser)
        logger.debug(f"🆕 New session {session_id[:8]}")

    request.state.session_id = session_id
    return sessions[session_id]

def remember_session(request: Request, response):
    if request.cookies.get(SESSION_COOKIE) != request.state.session_id:
        response.set_cookie(SESSION_COOKIE, request.state.session_id, httponly=True, samesite="lax")
    return response

def repo_url(owner: str, repo: str) -> str:
    return f"/repo/{quote(owner)}/{quote(repo)}"


# --- Relays ---

@router.post("/api/explain")
async def explain(request: Request, explainer: AIExplainer = Depends(get_ai_explainer)):
    try:
        data = await request.json()

        role = parse_role(data.get("role"))
        if role is None:
            return JSONResponse({"error": INVALID_ROLE_MESSAGE}, status_code=400)

        conversation = parse_conversation(data.get("conversation"))
        result = await explainer.explain(str(data.get("code") or ""), role, conversation, data.get("question"))

        if result.ok:
            return {"explanation": result.text}
        return JSONResponse({"error": result.error}, status_code=500)
    except Exception:
        logger.exception("❌ API Error in /api/explain")
        return JSONResponse({"error": SERVER_ERROR_MESSAGE}, status_code=500)

@router.post("/api/summary")
async def summary(request: Request, explainer: AIExplainer = Depends(get_ai_explainer)):
    try:
        data = await request.json()
        result = await explainer.summarize(str(data.get("readme") or ""))
    except Exception:
        logger.exception("❌ API Error in /api/summary")
        return {"summary": NO_SUMMARY_MESSAGE}

    return {"summary": result.text if result.ok else NO_SUMMARY_MESSAGE}

@router.get("/api/suggestions")
async def suggestions(request: Request, q: str = "", session: UserSession = Depends(get_user_session)):
    """Username autocomplete. Bursts of keystrokes from one session collapse into one lookup."""
    task = session.browser.search_suggestions(q)
    if task is not None:
        # wait() does not raise when a newer keystroke cancels this timer
        await asyncio.wait({task})
        if task.cancelled() or not task.result():
            return remember_session(request, JSONResponse({"suggestions": [], "superseded": True}))

    return remember_session(request, JSONResponse({"suggestions": session.browser.suggestions}))


# --- Pages ---

@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    username: Optional[str] = None,
    page: int = 1,
    session: UserSession = Depends(get_user_session)
):
    browser = session.browser
    if username and username.strip() and username.strip() != browser.username:
        await browser.load_profile(username.strip())

    response = templates.TemplateResponse(request, "index.html", {
        "username": browser.username or "",
        "repos": browser.paginate(page),
        "total_repos": len(browser.repos),
        "page": page,
        "page_numbers": browser.page_numbers,
        "summary": browser.summary,
    })
    return remember_session(request, response)

async def _open_repo(session: UserSession, owner: str, repo: str) -> Tuple[RepoSession, Optional[str]]:
    """
    The session's RepoSession for owner/repo, opened on first use.
    A tree that cannot be built gives an empty, uncached session plus the error.
    """
    key = f"{owner}/{repo}"
    repo_session = session.repos.get(key)
    if repo_session is not None:
        return repo_session, None

    repo_session = RepoSession(session.browser.fetcher, session.browser.relay, owner, repo)
    try:
        await repo_session.open()
    except TreeCollisionError as e:
        logger.error(f"❌ Could not build file tree for {owner}/{repo}: {e}")
        return RepoSession(session.browser.fetcher, session.browser.relay, owner, repo), str(e)

    session.repos[key] = repo_session
    return repo_session, None

@router.get("/repo/{owner}/{repo}", response_class=HTMLResponse)
async def repo_page(request: Request, owner: str, repo: str, session: UserSession = Depends(get_user_session)):
    repo_session, error = await _open_repo(session, owner, repo)

    workspace = repo_session.workspace
    response = templates.TemplateResponse(request, "repo.html", {
        "owner": owner,
        "repo": repo,
        "repo_url": repo_url(owner, repo),
        "rows": repo_session.navigator.render(),
        "workspace": workspace,
        "roles": [(role.value, ROLE_LABELS[role]) for role in Role],
        "error": error,
    })
    return remember_session(request, response)

@router.post("/repo/{owner}/{repo}/toggle")
async def toggle_folder(
    request: Request, owner: str, repo: str,
    path: str = Form(...),
    session: UserSession = Depends(get_user_session)
):
    repo_session, error = await _open_repo(session, owner, repo)
    if error is None:
        repo_session.navigator.toggle(path)
    return remember_session(request, RedirectResponse(repo_url(owner, repo), status_code=303))

@router.post("/repo/{owner}/{repo}/select")
async def select_file(
    request: Request, owner: str, repo: str,
    path: str = Form(...),
    session: UserSession = Depends(get_user_session)
):
    repo_session, error = await _open_repo(session, owner, repo)
    if error is None:
        await repo_session.select_file(path)
    return remember_session(request, RedirectResponse(repo_url(owner, repo), status_code=303))

@router.post("/repo/{owner}/{repo}/ask")
async def ask(
    request: Request, owner: str, repo: str,
    question: str = Form(""),
    role: Optional[str] = Form(None),
    session: UserSession = Depends(get_user_session)
):
    parsed = None
    if role is not None:
        parsed = parse_role(role)
        if parsed is None:
            raise HTTPException(status_code=400, detail=INVALID_ROLE_MESSAGE)

    repo_session, error = await _open_repo(session, owner, repo)
    if error is None:
        workspace = repo_session.workspace
        if parsed is not None:
            workspace.set_role(parsed)
        await workspace.ask(question)
    return remember_session(request, RedirectResponse(repo_url(owner, repo), status_code=303))


def create_app(settings: Settings) -> FastAPI:
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = FastAPI(title="Explainify")
    app.state.settings = settings
    # In-memory only: session id -> client state
    app.state.sessions = {}
    app.include_router(router)
    return app


app = create_app(Settings.from_env())
