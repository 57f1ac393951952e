from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from services import ChatTurn, RelayResult, RepoOwner, RepoSummaryItem, Role


def make_repo(index: int, owner: str = "octocat") -> RepoSummaryItem:
    return RepoSummaryItem(
        id=index,
        name=f"repo-{index}",
        owner=RepoOwner(login=owner),
        html_url=f"https://github.com/{owner}/repo-{index}",
    )


class FakeFetcher:
    """Stands in for GitHubFetcher; records calls."""

    def __init__(
        self,
        repos: Optional[List[RepoSummaryItem]] = None,
        readme: Optional[str] = None,
        files: Optional[Dict[str, str]] = None,
        users: Optional[Dict[str, List[str]]] = None,
    ):
        self.repos = repos or []
        self.readme = readme
        self.files = files or {}
        self.users = users or {}
        self.calls: List[tuple] = []

    def list_user_repos(self, username: str) -> List[RepoSummaryItem]:
        self.calls.append(("list_user_repos", username))
        return self.repos

    def get_readme(self, owner: str, repo: str) -> Optional[str]:
        self.calls.append(("get_readme", owner, repo))
        return self.readme

    def search_users(self, query: str) -> List[str]:
        self.calls.append(("search_users", query))
        return self.users.get(query, [])

    def get_file_tree(self, owner: str, repo: str) -> List[str]:
        self.calls.append(("get_file_tree", owner, repo))
        return list(self.files)

    def get_raw_file(self, owner: str, repo: str, path: str) -> Optional[str]:
        self.calls.append(("get_raw_file", owner, repo, path))
        return self.files.get(path)


class FakeRelay:
    """Stands in for AIExplainer / RelayClient."""

    def __init__(self, explanation: Optional[str] = "It adds numbers.", error: Optional[str] = None,
                 summary: Optional[str] = "A tidy profile."):
        self.explanation = explanation
        self.error = error
        self.summary = summary
        self.explain_calls: List[Dict[str, Any]] = []
        self.summarize_calls: List[str] = []

    async def explain(self, code: str, role: Role, conversation: List[ChatTurn], question: Optional[str] = None) -> RelayResult:
        self.explain_calls.append({"code": code, "role": role, "conversation": conversation, "question": question})
        if self.error:
            return RelayResult(error=self.error)
        return RelayResult(text=self.explanation)

    async def summarize(self, readme: str) -> RelayResult:
        self.summarize_calls.append(readme)
        if self.summary is None:
            return RelayResult(error="Unknown error")
        return RelayResult(text=self.summary)


class FakeCompletions:
    """Minimal `client.chat.completions` for AIExplainer."""

    def __init__(self, content: Optional[str] = "Explained.", choices: bool = True, raises: Optional[Exception] = None):
        self.content = content
        self.choices = choices
        self.raises = raises
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        if self.raises is not None:
            raise self.raises
        if not self.choices:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def fake_openai_client(completions: FakeCompletions) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.fixture
def completions() -> FakeCompletions:
    return FakeCompletions()


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()
