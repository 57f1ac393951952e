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
import base64
import binascii
import logging
import requests
from enum import Enum
from typing import Optional, List, Dict, Any, Literal
from urllib.parse import quote
from pydantic import BaseModel, Field, ValidationError
from openai import AsyncOpenAI, AsyncAzureOpenAI, APIError, APIStatusError

logger = logging.getLogger(__name__)

INVALID_ROLE_MESSAGE = "Invalid role selected"
SERVER_ERROR_MESSAGE = "Server error occurred."
UNKNOWN_ERROR_MESSAGE = "Unknown error"
NO_SUMMARY_MESSAGE = "No summary generated."
MISSING_KEY_MESSAGE = "OPENAI_API_KEY or AZURE_OPENAI_KEY not configured"


class Role(str, Enum):
    INTERN = "intern"
    NEWGRAD = "newgrad"
    SENIOR = "senior"
    PM = "pm"
    DESIGNER = "designer"


ROLE_PROMPTS: Dict[Role, str] = {
    Role.INTERN: "Explain the code like I am an intern with little experience.",
    Role.NEWGRAD: "Explain the structure and patterns as if to a new graduate developer.",
    Role.SENIOR: "Explain the architecture, performance, and design decisions like to a senior developer.",
    Role.PM: "Explain the high-level purpose and user flows like to a product manager.",
    Role.DESIGNER: "Explain what the UI does and how it might impact user experience, like to a designer.",
}

ROLE_LABELS: Dict[Role, str] = {
    Role.INTERN: "🧑‍🎓 Intern",
    Role.NEWGRAD: "👩‍💻 New Grad",
    Role.SENIOR: "🧠 Senior Dev",
    Role.PM: "🧭 PM",
    Role.DESIGNER: "🎨 Designer",
}


def parse_role(value: Any) -> Optional[Role]:
    """Return the Role for `value`, or None when it is not one of the known roles."""
    try:
        return Role(value)
    except ValueError:
        return None


# --- MODELS ---

class ChatTurn(BaseModel):
    speaker: Literal["user", "assistant"]
    text: str


def parse_conversation(items: Any) -> List[ChatTurn]:
    """
    Read chat turns sent by a client. Accepts `{speaker, text}` and the
    `{role, content}` shape; entries that fit neither are skipped.
    """
    if not isinstance(items, list):
        return []

    turns = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            turns.append(ChatTurn(
                speaker=item.get("speaker", item.get("role")),
                text=item.get("text", item.get("content")),
            ))
        except ValidationError:
            logger.debug(f"⚠️ Skipping malformed chat turn: {item!r}")
    return turns


class RepoOwner(BaseModel):
    login: str


class RepoSummaryItem(BaseModel):
    """One entry of a user's repository listing, as returned by the GitHub REST API."""
    id: int
    name: str
    owner: RepoOwner
    html_url: str
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0


class RelayResult(BaseModel):
    """Outcome of a relay call: either `text` (success) or `error` (failure)."""
    text: Optional[str] = Field(None, description="Completion text returned by the model.")
    error: Optional[str] = Field(None, description="Provider or transport error message.")

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


# --- PROMPTS ---

def build_explain_prompt(code: str, role: Role, conversation: Optional[List[ChatTurn]] = None, question: Optional[str] = None) -> str:
    prompt = f"{ROLE_PROMPTS[role]}\n\nCode:\n{code}"

    earlier = list(conversation or [])
    # The newest user turn is the question itself
    if question and earlier and earlier[-1].speaker == "user" and earlier[-1].text == question:
        earlier = earlier[:-1]

    if earlier:
        lines = [f"{'User' if turn.speaker == 'user' else 'Assistant'}: {turn.text}" for turn in earlier]
        prompt += "\n\nConversation so far:\n" + "\n".join(lines)

    if question:
        prompt += f"\n\nQuestion:\n{question}"

    return prompt


def build_summary_prompt(readme: str) -> str:
    return f"Summarize the following GitHub README.md in 2-3 sentences:\n\n{readme}"


# --- GITHUB ---

class GitHubFetcher:
    def __init__(self, token: Optional[str] = None, api_url: str = "https://api.github.com",
                 raw_url: str = "https://raw.githubusercontent.com"):
        self.headers = {"Accept": "application/vnd.github+json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")

    def _get(self, url: str, params: Dict[str, Any] = None) -> Optional[requests.Response]:
        response = requests.get(url, headers=self.headers, params=params)
        if response.status_code != 200:
            logger.error(f"❌ API Error: {response.status_code} for {url}\n{response.text[:500]}")
            return None
        return response

    def list_user_repos(self, username: str) -> List[RepoSummaryItem]:
        logger.info(f"🔍 Fetching repositories for {username}")
        response = self._get(f"{self.api_url}/users/{quote(username)}/repos", params={"per_page": 100})
        if response is None:
            return []

        data = response.json()
        if not isinstance(data, list):
            logger.error(f"❌ Unexpected repository listing for {username}: {type(data).__name__}")
            return []

        repos = []
        for item in data:
            try:
                repos.append(RepoSummaryItem.model_validate(item))
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping malformed repository entry: {e.error_count()} validation errors")
        return repos

    def search_users(self, query: str, first: int = 10) -> List[str]:
        response = self._get(f"{self.api_url}/search/users", params={"q": query, "per_page": first})
        if response is None:
            return []

        data = response.json()
        try:
            return [item["login"] for item in data.get("items", [])]
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"❌ Error parsing user search: {e}")
            return []

    def get_file_tree(self, owner: str, repo: str, branch: str = "HEAD") -> List[str]:
        logger.info(f"🔍 Fetching file tree for {owner}/{repo}")
        response = self._get(f"{self.api_url}/repos/{owner}/{repo}/git/trees/{branch}", params={"recursive": 1})
        if response is None:
            return []

        data = response.json()
        try:
            # Files only; directories are implied by the paths
            return [item["path"] for item in data.get("tree", []) if item.get("type") == "blob"]
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"❌ Error parsing tree: {e}")
            return []

    def get_raw_file(self, owner: str, repo: str, path: str, branch: str = "HEAD") -> Optional[str]:
        response = self._get(f"{self.raw_url}/{owner}/{repo}/{branch}/{quote(path, safe='/')}")
        if response is None:
            return None
        return response.text

    def get_readme(self, owner: str, repo: str) -> Optional[str]:
        """Fetch and decode a repository README. Returns None when there is none."""
        response = self._get(f"{self.api_url}/repos/{owner}/{repo}/readme")
        if response is None:
            return None

        data = response.json()
        try:
            return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        except (KeyError, TypeError, binascii.Error) as e:
            logger.error(f"❌ Error decoding README for {owner}/{repo}: {e}")
            return None


# --- AI ---

class AIExplainer:
    """Server-side relay to the chat-completion API. Holds the LLM credential."""

    def __init__(self, api_key: str = None, base_url: str = None, api_version: str = None,
                 is_azure: bool = False, model: str = "gpt-3.5-turbo", client: Any = None):
        self.model_name = model
        if client is not None:
            self.client = client
        elif not api_key:
            # Without a key every call fails with MISSING_KEY_MESSAGE
            self.client = None
        elif is_azure:
            self.client = AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=base_url,
                api_version=api_version or "2024-08-01-preview"
            )
        else:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def _complete(self, prompt: str) -> RelayResult:
        if self.client is None:
            logger.error(f"❌ {MISSING_KEY_MESSAGE}")
            return RelayResult(error=MISSING_KEY_MESSAGE)

        try:
            completion = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIStatusError as e:
            message = e.body.get("message") if isinstance(e.body, dict) else None
            logger.error(f"❌ Provider error ({e.status_code}): {message or e.message}")
            return RelayResult(error=message or e.message or UNKNOWN_ERROR_MESSAGE)
        except APIError as e:
            logger.error(f"❌ Provider request failed: {e.message}")
            return RelayResult(error=e.message or UNKNOWN_ERROR_MESSAGE)

        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices and choices[0].message else None
        if not content:
            logger.warning("⚠️ Completion had no content")
            return RelayResult(error=UNKNOWN_ERROR_MESSAGE)
        return RelayResult(text=content)

    async def explain(self, code: str, role: Role, conversation: Optional[List[ChatTurn]] = None,
                      question: Optional[str] = None) -> RelayResult:
        prompt = build_explain_prompt(code, Role(role), conversation, question)
        logger.info(f"💡 Explaining {len(code)} chars of code for role={Role(role).value}")
        return await self._complete(prompt)

    async def summarize(self, readme: str) -> RelayResult:
        logger.info(f"📝 Summarizing README ({len(readme)} chars)")
        return await self._complete(build_summary_prompt(readme))


class RelayClient:
    """HTTP client for a running server's relay endpoints. Mirrors AIExplainer's interface."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Optional[requests.Response]:
        try:
            return await asyncio.to_thread(requests.post, f"{self.base_url}{endpoint}", json=payload)
        except requests.RequestException as e:
            logger.error(f"❌ Relay request to {endpoint} failed: {e}")
            return None

    async def explain(self, code: str, role: Role, conversation: Optional[List[ChatTurn]] = None,
                      question: Optional[str] = None) -> RelayResult:
        response = await self._post("/api/explain", {
            "code": code,
            "role": Role(role).value,
            "conversation": [turn.model_dump() for turn in conversation or []],
            "question": question,
        })
        if response is None:
            return RelayResult(error=SERVER_ERROR_MESSAGE)

        try:
            data = response.json()
        except ValueError:
            return RelayResult(error=f"Unexpected response ({response.status_code})")

        if response.status_code == 200 and data.get("explanation"):
            return RelayResult(text=data["explanation"])
        return RelayResult(error=data.get("error") or UNKNOWN_ERROR_MESSAGE)

    async def summarize(self, readme: str) -> RelayResult:
        response = await self._post("/api/summary", {"readme": readme})
        if response is None:
            return RelayResult(error=SERVER_ERROR_MESSAGE)

        try:
            data = response.json()
        except ValueError:
            return RelayResult(error=f"Unexpected response ({response.status_code})")

        if response.status_code == 200 and data.get("summary"):
            return RelayResult(text=data["summary"])
        return RelayResult(error=data.get("error") or NO_SUMMARY_MESSAGE)
