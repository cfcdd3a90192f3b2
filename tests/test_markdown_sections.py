from notion2gitlab.parsers.markdown_sections import extract_body, extract_named_section, extract_section

PAGE = """# Fix login

Status: Done
Aufgaben-ID: TASK-7

Users cannot log in after reset.

## Description
Body text

## Notes
Other text
"""


def test_body_skips_title_and_metadata() -> None:
    assert extract_body(PAGE).startswith("Users cannot log in after reset.")


def test_body_keeps_text_when_there_is_no_front_matter() -> None:
    assert extract_body("Just text\nmore") == "Just text\nmore"


def test_named_section_stops_at_next_heading() -> None:
    assert extract_section(PAGE, "Description") == "Body text"
    assert extract_section(PAGE, "## description") == "Body text"


def test_last_section_runs_to_end_of_document() -> None:
    assert extract_section(PAGE, "Notes") == "Other text"


def test_missing_section_falls_back_to_whole_document() -> None:
    assert extract_named_section(PAGE, "Acceptance") is None
    assert extract_section(PAGE, "Acceptance") == PAGE


def test_section_heading_with_special_characters_and_crlf() -> None:
    content = "# T\r\n## Was (Ziel)?\r\nInhalt\r\n## Next\r\n"

    assert extract_section(content, "Was (Ziel)?") == "Inhalt"


def test_blank_header_means_body() -> None:
    assert extract_section(PAGE, "   ") == extract_body(PAGE)
