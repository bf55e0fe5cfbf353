from tools.splice import DEFAULT_POSITION, normalize_position, splice_section

PAGE = '<main className="p-4">\n  <h1>Title</h1>\n</main>'


def test_before_closing_is_default():
    text, reason = splice_section(PAGE, "<p>X</p>")
    assert reason == "ok"
    assert DEFAULT_POSITION == "before_closing"
    assert text.endswith("<p>X</p>\n</main>")
    assert "<h1>Title</h1>" in text


def test_after_opening_inserts_after_first_tag():
    text, reason = splice_section(PAGE, "<nav/>", "after_opening")
    assert reason == "ok"
    assert text.startswith('<main className="p-4">\n<nav/>\n')


def test_after_opening_skips_arrow_functions():
    src = "const Page = () => (\n  <div>body</div>\n)"
    text, _ = splice_section(src, "<b>new</b>", "after_opening")
    assert text.index("<b>new</b>") > text.index("<div>")
    assert text.index("<b>new</b>") < text.index("body")


def test_replace_and_append():
    assert splice_section(PAGE, "<div/>", "replace") == ("<div/>", "ok")
    text, _ = splice_section(PAGE, "// tail", "append")
    assert text == PAGE + "\n// tail"


def test_failure_reasons():
    assert splice_section("no tags here", "x", "before_closing") == (None, "no_closing_tag")
    assert splice_section("no tags here", "x", "after_opening") == (None, "no_opening_tag")
    assert splice_section(PAGE, "x", "sideways") == (None, "unknown_position")


def test_position_spelling_is_normalized():
    assert normalize_position("After-Opening") == "after_opening"
    assert normalize_position(None) == "before_closing"
    text, reason = splice_section(PAGE, "<nav/>", " AFTER_OPENING ")
    assert reason == "ok"
