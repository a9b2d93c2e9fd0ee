import pytest

from code_session_bot.languages import Language, match_command, prepare_source


def test_commands_match_in_priority_order() -> None:
    assert match_command("/cpp int main(){}") is Language.CPP
    assert match_command("/bash echo hi") is Language.BASH
    assert match_command("/py print(1)") is Language.PYTHON
    assert match_command("/js console.log(1)") is Language.JAVASCRIPT


def test_command_match_is_a_prefix_match() -> None:
    assert match_command("/python print(1)") is Language.PYTHON
    assert match_command("/py@code_bot print(1)") is Language.PYTHON


def test_unrecognized_text_has_no_language() -> None:
    assert match_command("hello there") is None
    assert match_command(" /py print(1)") is None
    assert match_command("/rust fn main(){}") is None


def test_only_cpp_has_a_compile_step() -> None:
    compiled = {language for language in Language if language.capabilities.needs_compile}
    assert compiled == {Language.CPP}


def test_javascript_does_not_feed_stdin() -> None:
    assert not Language.JAVASCRIPT.capabilities.feeds_stdin
    assert Language.PYTHON.capabilities.feeds_stdin


def test_from_id_accepts_backend_ids_and_commands() -> None:
    assert Language.from_id("python") is Language.PYTHON
    assert Language.from_id("py") is Language.PYTHON
    assert Language.from_id("/cpp") is Language.CPP
    with pytest.raises(ValueError, match="Unsupported language"):
        Language.from_id("cobol")


def test_prepare_source_embeds_input_for_javascript() -> None:
    src = prepare_source(Language.JAVASCRIPT, "console.log(input)", 'say "hi"\n')
    first_line, rest = src.split("\n", 1)
    assert first_line == 'const input = "say \\"hi\\"\\n";'
    assert rest == "console.log(input)"


def test_prepare_source_leaves_streamed_languages_untouched() -> None:
    assert prepare_source(Language.PYTHON, "print(input())", "hi") == "print(input())"
