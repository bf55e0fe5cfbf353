import json
import os
import tempfile

import pytest

# Keep test runs out of the working directory's log file.
os.environ.setdefault(
    "SITEWRIGHT_LOG_FILE", os.path.join(tempfile.gettempdir(), "sitewright-tests.log")
)

from agent.llm import Completion  # noqa: E402
from runtime.config import AgentConfig  # noqa: E402
from tools.artifact_store import ArtifactStore  # noqa: E402

# A root page long enough to pass the fresh-mode completion check.
BIG_HOME = (
    "import Hero from '../components/Hero'\n\n"
    "export default function Home() {\n"
    "  return (\n"
    "    <main>\n"
    "      <Hero />\n"
    + "      <p className=\"text-gray-700\">Welcome to the bakery.</p>\n" * 12
    + "    </main>\n"
    "  )\n"
    "}\n"
)

HERO = "export default function Hero() {\n  return <section><h1>Fresh bread</h1></section>\n}\n"


def act_reply(action: str, thought: str = "next step", **params) -> str:
    return f"Thought: {thought}\nAction: {action}\nParams: {json.dumps(params)}"


def finish_reply(answer: str = "All done") -> str:
    return f"Thought: finished\nAction: finish\nFinal Answer: {answer}"


class ScriptedLLM:
    """Stands in for agent.llm.complete; replays canned replies in order."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.prompts = []
        self.max_tokens = []

    def __call__(self, prompt, max_tokens=None):
        self.prompts.append(prompt)
        self.max_tokens.append(max_tokens)
        if not self.replies:
            return Completion(text=finish_reply("script exhausted"))
        reply = self.replies.pop(0)
        if isinstance(reply, Completion):
            return reply
        return Completion(text=reply)

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def config(tmp_path):
    return AgentConfig(project_root=str(tmp_path / "site"), max_reasoning_iterations=10)


@pytest.fixture
def store(config):
    return ArtifactStore(config.root)


@pytest.fixture
def existing_project(store):
    """A minimal generated project with a real root page and one component."""
    store.write_component("Hero", HERO)
    store.write_page("home", BIG_HOME)
    return store
