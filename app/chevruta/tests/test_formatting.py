"""Tests for Slack mrkdwn detection, conversion, and finishing."""

from __future__ import annotations

import pytest

from app.chevruta.messaging.formatting import (
    COVERAGE_BANNER,
    add_coverage_warning,
    basic_slack_format_conversion,
    canonicalize_url,
    clean_whitespace,
    finalize_response,
    has_anchor_links,
    has_atx_headers,
    has_double_bold,
    needs_slack_formatting,
)

DEFECTIVE = [
    '<a href="https://example.org/Genesis 3:4" target="_blank">Genesis 3:4</a>',
    "## Title\n\nSome **bold** words",
    "# **Heading in bold**",
    "### Deep ## header ###",
    "**a** and **b** and ***c***",
    "<A HREF='https://www.sefaria.org/Song of Songs 3:4'>Song of Songs 3:4</A>",
    "####### not a header but **bold**",
    "#\tTabbed header  ",
    "text\n## Mid\n**x**\n<a href=\"https://s.org/Rashi on Genesis 1:1:2\">Rashi</a>",
]

CLEAN = [
    "",
    "plain text",
    "*already bold* and _italic_",
    "<https://www.sefaria.org/Genesis.3.4|Genesis 3:4>",
    "#hashtag is not a header",
    "a * b ** c",
    "• bullet\n• another",
    "שבת שלום",
]


class TestDetection:
    def test_anchor(self) -> None:
        assert has_anchor_links('<a href="https://x.org/a">x</a>')
        assert not has_anchor_links("<https://x.org/a|x>")

    def test_header(self) -> None:
        assert has_atx_headers("intro\n### Sources\nbody")
        assert not has_atx_headers("#hashtag")
        assert not has_atx_headers("####### seven")

    def test_double_bold(self) -> None:
        assert has_double_bold("a **b** c")
        assert not has_double_bold("a *b* c")

    @pytest.mark.parametrize("text", CLEAN)
    def test_clean_inputs_need_nothing(self, text: str) -> None:
        assert not needs_slack_formatting(text)


class TestCanonicalizeUrl:
    def test_verse_reference(self) -> None:
        assert canonicalize_url("https://example.org/Genesis 3:4") == "https://example.org/Genesis.3.4"

    def test_book_name_spaces(self) -> None:
        assert (
            canonicalize_url("https://www.sefaria.org/Song of Songs 3:4")
            == "https://www.sefaria.org/Song_of_Songs.3.4"
        )

    def test_encoded_comma(self) -> None:
        assert (
            canonicalize_url("https://www.sefaria.org/Midrash_Tanchuma%2C_Bereshit.4.1")
            == "https://www.sefaria.org/Midrash_Tanchuma,_Bereshit.4.1"
        )

    def test_port_untouched(self) -> None:
        assert canonicalize_url("http://localhost:8000/Exodus 20:3") == "http://localhost:8000/Exodus.20.3"

    def test_deterministic(self) -> None:
        url = "https://www.sefaria.org/Rashi on Genesis 1:1:2"
        assert canonicalize_url(url) == canonicalize_url(url)


class TestBasicConversion:
    def test_anchor_to_slack_link(self) -> None:
        src = '<a href="https://example.org/Genesis 3:4" target="_blank">Genesis 3:4</a>'
        assert basic_slack_format_conversion(src) == "<https://example.org/Genesis.3.4|Genesis 3:4>"

    def test_header_and_bold(self) -> None:
        out = basic_slack_format_conversion("## Title\n\nSome **bold** words")
        assert "*Title*" in out
        assert "*bold*" in out
        assert "##" not in out
        assert "**" not in out

    def test_bold_header_not_doubled(self) -> None:
        assert basic_slack_format_conversion("# **Heading**") == "*Heading*"

    @pytest.mark.parametrize("text", DEFECTIVE)
    def test_no_residual_defects(self, text: str) -> None:
        assert not needs_slack_formatting(basic_slack_format_conversion(text))

    @pytest.mark.parametrize("text", DEFECTIVE)
    def test_idempotent(self, text: str) -> None:
        once = basic_slack_format_conversion(text)
        assert basic_slack_format_conversion(once) == once

    @pytest.mark.parametrize("text", CLEAN)
    def test_identity_on_clean_text(self, text: str) -> None:
        assert basic_slack_format_conversion(text) == text


class TestFinishing:
    def test_banner_added_case_insensitive(self) -> None:
        out = add_coverage_warning("This topic has LIMITED COVERAGE in the sources.")
        assert out.startswith(COVERAGE_BANNER)

    @pytest.mark.parametrize("phrase", ["few sources", "not well covered"])
    def test_other_triggers(self, phrase: str) -> None:
        assert add_coverage_warning(f"There are {phrase} here.").startswith(COVERAGE_BANNER)

    def test_no_banner_without_trigger(self) -> None:
        assert add_coverage_warning("A well sourced answer.") == "A well sourced answer."

    def test_whitespace_cleanup(self) -> None:
        assert clean_whitespace("  a  \t b \n\n\n\n c  \n d ") == "a b\n\nc\nd"

    def test_finalize_idempotent(self) -> None:
        text = "Only few sources   discuss this.\n\n\n\nSee *Rashi*."
        once = finalize_response(text)
        assert finalize_response(once) == once
        assert once.count("Limited Coverage") == 1


class TestAnchorVariants:
    @pytest.mark.parametrize(("src", "expected"), [
        (
            '<a target="_blank" href="https://www.sefaria.org/Genesis 3:4">Genesis 3:4</a>',
            "<https://www.sefaria.org/Genesis.3.4|Genesis 3:4>",
        ),
        (
            "<a class='ref' href='https://www.sefaria.org/Exodus 20:3' rel=noopener>Exodus 20:3</a>",
            "<https://www.sefaria.org/Exodus.20.3|Exodus 20:3>",
        ),
        (
            "<a href=https://www.sefaria.org/Berakhot.2a>Berakhot 2a</a>",
            "<https://www.sefaria.org/Berakhot.2a|Berakhot 2a>",
        ),
        (
            '<a href="https://www.sefaria.org/Genesis 1:1"><b>Genesis</b> <i>1:1</i></a>',
            "<https://www.sefaria.org/Genesis.1.1|Genesis 1:1>",
        ),
        (
            '<A\n  HREF = "https://www.sefaria.org/Psalms 23:1"\n>Psalm\n23</A >',
            "<https://www.sefaria.org/Psalms.23.1|Psalm 23>",
        ),
        ('<a href="https://www.sefaria.org/Genesis.1.1"></a>', "<https://www.sefaria.org/Genesis.1.1>"),
        ('<a name="top">Top</a>', "Top"),
    ])
    def test_converted(self, src: str, expected: str) -> None:
        assert has_anchor_links(src)
        out = basic_slack_format_conversion(src)
        assert out == expected
        assert not needs_slack_formatting(out)

    def test_not_confused_with_slack_links(self) -> None:
        assert not has_anchor_links("<about:blank> and <https://a.org|a>")


class TestDeepNesting:
    @pytest.mark.parametrize("depth", [2, 3, 7, 20, 64])
    def test_star_runs_collapse(self, depth: int) -> None:
        src = "*" * depth + "x" + "*" * depth
        assert basic_slack_format_conversion(src) == "*x*"

    def test_deep_header(self) -> None:
        src = "# " + "*" * 25 + "Sources" + "*" * 25
        assert basic_slack_format_conversion(src) == "*Sources*"

    def test_nested_spans(self) -> None:
        out = basic_slack_format_conversion("**a **b **c** d** e**")
        assert not needs_slack_formatting(out)
        assert "**" not in out

    def test_lopsided_runs(self) -> None:
        assert basic_slack_format_conversion("**" * 30 + "tail**") == "*tail*"


class TestCodeSpans:
    def test_fenced_block_untouched(self) -> None:
        src = "## Example\n```python\n# comment\ndef f(**kwargs**):\n    pass\n```"
        out = basic_slack_format_conversion(src)
        assert out == "*Example*\n```python\n# comment\ndef f(**kwargs**):\n    pass\n```"

    def test_inline_code_untouched(self) -> None:
        src = "Call `f(**kw**)` with **care**"
        assert basic_slack_format_conversion(src) == "Call `f(**kw**)` with *care*"

    @pytest.mark.parametrize("text", [
        "```\n# not a header\n**not bold**\n```",
        "use `**kwargs**` here",
        '`<a href="x">y</a>`',
    ])
    def test_code_only_defects_are_clean(self, text: str) -> None:
        assert not needs_slack_formatting(text)
        assert basic_slack_format_conversion(text) == text
