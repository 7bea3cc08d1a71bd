"""Prompt management module.

Externalizes prompts to text files for easy customization.
Prompts can be overridden by placing files in the working directory.
Templates use ``$name`` placeholders so LaTeX braces need no escaping.
"""

from functools import lru_cache
from pathlib import Path
from string import Template

# Default prompts directory (package location)
_PROMPTS_DIR = Path(__file__).parent


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Load a prompt from file.

    Search order:
    1. Current working directory: ./prompts/{name}.txt
    2. Package prompts directory: mathfluent/prompts/{name}.txt

    Args:
        name: Prompt name (without .txt extension)

    Returns:
        Prompt text content

    Raises:
        FileNotFoundError: If prompt file not found in any location
    """
    filename = f"{name}.txt"

    local_path = Path.cwd() / "prompts" / filename
    if local_path.exists():
        return local_path.read_text(encoding="utf-8")

    package_path = _PROMPTS_DIR / filename
    if package_path.exists():
        return package_path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"Prompt '{name}' not found. Searched:\n"
        f"  - {local_path}\n"
        f"  - {package_path}"
    )


def render_prompt(name: str, **values: object) -> str:
    """Load a prompt and substitute ``$placeholders``.

    Raises:
        KeyError: If the template references a value that was not given
    """
    return Template(load_prompt(name)).substitute(
        {key: str(value) for key, value in values.items()}
    )


def get_system_prompt() -> str:
    """Get the tutor persona shared by every AI request."""
    return load_prompt("system")


def clear_cache() -> None:
    """Clear the prompt cache (useful after modifying prompt files)."""
    load_prompt.cache_clear()


__all__ = [
    "load_prompt",
    "render_prompt",
    "get_system_prompt",
    "clear_cache",
]
