from pathlib import Path

from code_session_bot import Language
from code_session_bot.config import _ENV_KEYS


def _readme() -> str:
    root = Path(__file__).resolve().parents[1]
    return (root / "README.md").read_text(encoding="utf-8")


def test_readme_has_explicit_honest_scope_statement() -> None:
    readme = _readme()

    assert "Honest scope:" in readme
    assert "Good fit:" in readme
    assert "Not good alone:" in readme


def test_readme_lists_every_language_command() -> None:
    readme = _readme()

    for language in Language:
        assert f"| `{language.command}` |" in readme


def test_readme_documents_every_environment_key() -> None:
    readme = _readme()

    for env_key in _ENV_KEYS:
        assert f"`{env_key}`" in readme


def test_readme_common_gotchas_are_current() -> None:
    readme = _readme()

    assert "### Common Gotchas" in readme
    assert "Anything written to stderr counts as a failure" in readme
    assert "`input` constant" in readme
