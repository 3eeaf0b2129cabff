from vistaguide.llm.sanitize import sanitize_model_output, strip_control


def test_markdown_prefix_and_escaped_breaks_are_cleaned():
    raw = "**Answer:** It is *old*\\n\\nVery old."
    assert sanitize_model_output(raw) == "It is old. Very old."


def test_real_newlines_headers_and_list_markers():
    raw = "## Timings\n- Opens at 6 am\n- Closed on Fridays"
    assert sanitize_model_output(raw) == "Timings Opens at 6 am Closed on Fridays"


def test_quotes_html_zero_width_and_repeated_punctuation():
    raw = '"<b>the fort</b> is huge!!\u200b Really??"'
    assert sanitize_model_output(raw) == "The fort is huge! Really?"


def test_other_answer_prefixes():
    assert sanitize_model_output("The answer is: yes, daily.") == "Yes, daily."
    assert sanitize_model_output("Response: open till 6.") == "Open till 6."


def test_empty_output_stays_empty():
    assert sanitize_model_output("") == ""
    assert sanitize_model_output("** \\n ") == ""


def test_strip_control_keeps_text():
    assert strip_control("  Hello\x00 there\x07 ") == "Hello there"
