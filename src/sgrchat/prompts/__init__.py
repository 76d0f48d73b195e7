"""Prompt texts sent to the model.

Every prompt is a ``<name>.txt`` file shipped beside this module:
``system_agent``, ``system_ask`` and ``system_plan`` lead each request made
in that chat mode, and ``title`` asks for a conversation title. A file of
the same name in ``./prompts`` under the working directory is read instead,
so wording can be tuned per project without reinstalling.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent
OVERRIDE_DIR = Path("prompts")
SYSTEM_PROMPT_PREFIX = "system_"


def prompt_locations(name: str) -> list[Path]:
    """Files tried for prompt ``name``, override first."""
    filename = f"{name}.txt"
    return [Path.cwd() / OVERRIDE_DIR / filename, PACKAGE_DIR / filename]


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Text of prompt ``name`` with surrounding whitespace removed.

    Raises:
        FileNotFoundError: If no location holds the prompt
    """
    locations = prompt_locations(name)
    for path in locations:
        if path.is_file():
            return path.read_text(encoding="utf-8").strip()
    searched = ", ".join(str(path) for path in locations)
    raise FileNotFoundError(f"No prompt named {name!r} (looked in {searched})")


def get_system_prompt(mode: str | Enum) -> str:
    """System prompt for a chat mode, given as ``ChatMode`` or its value."""
    value = mode.value if isinstance(mode, Enum) else mode
    return load_prompt(SYSTEM_PROMPT_PREFIX + value)


def get_title_prompt(text: str) -> str:
    return load_prompt("title").format(text=text)


def clear_cache() -> None:
    """Forget loaded prompts so edited files are read again."""
    load_prompt.cache_clear()


__all__ = [
    "clear_cache",
    "get_system_prompt",
    "get_title_prompt",
    "load_prompt",
    "prompt_locations",
]
