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
import requests
from enum import Enum
from typing import List, Optional
from services import GitHubFetcher, ChatTurn, RelayResult, Role, SERVER_ERROR_MESSAGE
from tree import TreeNavigator, build_file_tree

logger = logging.getLogger(__name__)


class WorkspaceState(str, Enum):
    IDLE = "idle"
    FILE_LOADED = "file_loaded"
    ASKING = "asking"


class FileChatWorkspace:
    """
    The selected file of a repository and the chat about it.

    The transcript belongs to the selected file: choosing another file
    always starts an empty conversation.
    """

    def __init__(self, fetcher: GitHubFetcher, relay, owner: str, repo: str, role: Role = Role.INTERN):
        self.fetcher = fetcher
        self.relay = relay
        self.owner = owner
        self.repo = repo
        self.role = Role(role)

        self.file_path: Optional[str] = None
        self.file_content: Optional[str] = None
        self.transcript: List[ChatTurn] = []
        self.question = ""
        self.loading = False

    @property
    def state(self) -> WorkspaceState:
        if self.loading:
            return WorkspaceState.ASKING
        if self.file_content is None:
            return WorkspaceState.IDLE
        return WorkspaceState.FILE_LOADED

    @property
    def can_ask(self) -> bool:
        return self.file_content is not None and not self.loading and bool(self.question.strip())

    def set_role(self, role):
        self.role = Role(role)

    async def select_file(self, path: str):
        content = None
        try:
            content = await asyncio.to_thread(self.fetcher.get_raw_file, self.owner, self.repo, path)
        except requests.RequestException as e:
            logger.error(f"❌ Failed to fetch {self.owner}/{self.repo}/{path}: {e}")
        finally:
            self.file_path = path
            self.file_content = content
            self.transcript = []
            self.question = ""

    async def ask(self, question: Optional[str] = None) -> Optional[ChatTurn]:
        if question is not None:
            self.question = question
        if self.file_content is None or not self.question.strip():
            return None

        asked = self.question
        # Selecting another file mid-request swaps in a fresh list; the reply stays with the old one
        transcript = self.transcript
        transcript.append(ChatTurn(speaker="user", text=asked))
        self.loading = True
        try:
            try:
                result = await self.relay.explain(self.file_content, self.role, list(transcript), asked)
            except Exception:
                logger.exception(f"❌ Explain request failed for {self.file_path}")
                result = RelayResult(error=SERVER_ERROR_MESSAGE)

            if result.ok:
                reply = ChatTurn(speaker="assistant", text=result.text)
                if transcript is self.transcript:
                    self.question = ""
            else:
                reply = ChatTurn(speaker="assistant", text=f"❌ Error: {result.error}")
            transcript.append(reply)
            return reply
        finally:
            self.loading = False


class RepoSession:
    """File tree and chat workspace for one repository, wired together."""

    def __init__(self, fetcher: GitHubFetcher, relay, owner: str, repo: str):
        self.fetcher = fetcher
        self.owner = owner
        self.repo = repo
        self.workspace = FileChatWorkspace(fetcher, relay, owner, repo)
        self.navigator = TreeNavigator(on_file_selected=self.workspace.select_file)
        self.file_count = 0

    async def open(self):
        paths = await asyncio.to_thread(self.fetcher.get_file_tree, self.owner, self.repo)
        self.file_count = len(paths)
        self.navigator.load(build_file_tree(paths))
        logger.info(f"📁 Loaded {len(paths)} files for {self.owner}/{self.repo}")

    async def select_file(self, path: str):
        await self.navigator.select_file(path)
