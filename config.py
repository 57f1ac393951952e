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

import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and handed to the app and CLI."""

    # Server-held LLM credentials (never sent to the browser)
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    azure_openai_key: Optional[str] = None
    azure_openai_url: Optional[str] = None
    azure_deployment_name: str = "gpt-4o"
    azure_openai_api_version: Optional[str] = None

    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_raw_url: str = "https://raw.githubusercontent.com"

    debounce_seconds: float = Field(0.3, ge=0)
    page_size: int = Field(9, gt=0)
    log_level: str = "INFO"

    @property
    def uses_azure(self) -> bool:
        return bool(self.azure_openai_key and self.azure_openai_url)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
            azure_openai_key=os.getenv("AZURE_OPENAI_KEY") or os.getenv("AZURE_OPENAI_API_KEY"),
            azure_openai_url=os.getenv("AZURE_OPENAI_URL"),
            azure_deployment_name=os.getenv("AZURE_DEPLOYMENT_NAME", "gpt-4o"),
            azure_openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION"),
            github_token=os.getenv("GITHUB_TOKEN"),
            github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            github_raw_url=os.getenv("GITHUB_RAW_URL", "https://raw.githubusercontent.com"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
