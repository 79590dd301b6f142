"""Utility functions for loading and filling prompt text files."""
import re
from functools import lru_cache
from pathlib import Path
import typing as t

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@lru_cache(maxsize=None)
def load_prompt(prompt_name: str, prompts_dir: t.Optional[str] = None) -> str:
    """
    Load a prompt from a text file.

    Args:
        prompt_name: Name of the prompt file (without .txt extension)
        prompts_dir: Optional custom path to prompts directory.
                    Defaults to this module's parent directory.

    Returns:
        The content of the prompt file as a string.

    Raises:
        FileNotFoundError: If the prompt file doesn't exist.
        IOError: If there's an error reading the file.
    """
    # Default to prompts directory
    if prompts_dir is None:
        prompts_dir = Path(__file__).resolve().parent

    prompt_file = Path(prompts_dir) / f"{prompt_name}.txt"

    if not prompt_file.exists():
        raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

    try:
        with open(prompt_file, 'r', encoding='utf-8') as f:
            return f.read()
    except IOError as e:
        raise IOError(f"Error reading prompt file {prompt_file}: {e}")


def render_prompt(prompt_name: str, **values: t.Any) -> str:
    """
    Load a prompt template and substitute its `{placeholder}` markers.

    Substitution is a single pass over the template: every `{name}` for a
    supplied value is replaced with `str(value)`, markers inside substituted
    values are left as they are, and any other braces (JSON examples in the
    template) are left alone.

    Args:
        prompt_name: Name of the prompt file (without .txt extension)
        **values: Placeholder values keyed by placeholder name

    Returns:
        The filled prompt text.
    """
    def substitute(match: re.Match) -> str:
        name = match.group(1)
        return str(values[name]) if name in values else match.group(0)

    return _PLACEHOLDER.sub(substitute, load_prompt(prompt_name))
