import pytest
from click.testing import CliRunner

import cli as cli_module
from tests.conftest import FakeFetcher, FakeRelay, make_repo

FILES = {
    "src/add.py": "def add(a, b):\n    return a + b\n",
    "src/util/strings.py": "def shout(s):\n    return s.upper()\n",
    "README.md": "# demo\n",
}


@pytest.fixture
def fetcher(monkeypatch) -> FakeFetcher:
    fetcher = FakeFetcher(repos=[make_repo(i) for i in range(1, 13)], readme="# hi", files=FILES)
    monkeypatch.setattr(cli_module, "GitHubFetcher", lambda *args, **kwargs: fetcher)
    return fetcher


@pytest.fixture
def relay(monkeypatch) -> FakeRelay:
    relay = FakeRelay(explanation="It adds numbers.", summary="Octocat's demo repositories.")
    monkeypatch.setattr(cli_module, "RelayClient", lambda base_url: relay)
    return relay


def test_tree_prints_fully_expanded_tree(fetcher, relay):
    result = CliRunner().invoke(cli_module.cli, ["tree", "octocat", "demo"])

    assert result.exit_code == 0, result.output
    tree_lines = [line for line in result.output.splitlines() if "📂" in line or "📄" in line]
    assert tree_lines == [
        "📂 src",
        "  📂 util",
        "    📄 strings.py",
        "  📄 add.py",
        "📄 README.md",
    ]


def test_profile_prints_requested_page(fetcher, relay):
    result = CliRunner().invoke(cli_module.cli, ["profile", "octocat", "--page", "2"])

    assert result.exit_code == 0, result.output
    assert "Octocat's demo repositories." in result.output
    assert "repo-10" in result.output
    assert "repo-9\n" not in result.output
    assert "Page 2 of 2 (12 repositories)" in result.output


def test_chat_asks_until_blank_line(fetcher, relay):
    result = CliRunner().invoke(
        cli_module.cli,
        ["chat", "octocat", "demo", "src/add.py", "--role", "senior"],
        input="What does it do?\n\n",
    )

    assert result.exit_code == 0, result.output
    assert "💡 It adds numbers." in result.output
    assert len(relay.explain_calls) == 1
    assert relay.explain_calls[0]["role"].value == "senior"


def test_chat_reports_missing_file(fetcher, relay):
    result = CliRunner().invoke(cli_module.cli, ["chat", "octocat", "demo", "nope.py"])

    assert result.exit_code == 0
    assert "❌ Could not load nope.py" in result.output
    assert relay.explain_calls == []
