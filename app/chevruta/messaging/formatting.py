"""Slack mrkdwn formatting -- defect detection, deterministic conversion, finishing.

Everything here is pure: same input, same output, no I/O.  The two-tier
normalizer in :mod:`.normalizer` builds on these functions.  Code spans
(fenced blocks and inline backticks) are never inspected or rewritten.
"""

from __future__ import annotations

import re

_CODE = re.compile(r"```.*?```|`[^`\n]+`", re.DOTALL)
_ANCHOR = re.compile(r"<a\b([^>]*)>(.*?)</a\s*>", re.IGNORECASE | re.DOTALL)
_HREF = re.compile(r"""\bhref\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""", re.IGNORECASE)
_TAG = re.compile(r"<[^>]*>")
_ATX_HEADER = re.compile(r"^#{1,6}[ \t]+(.*\S)[ \t]*$", re.MULTILINE)
_DOUBLE_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_BOLD_RUN = re.compile(r"\*{2,}([^*]+?)\*{2,}")

_URL_PREFIX = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*://[^/?#]*)(.*)$", re.DOTALL)
_ENCODED_COMMA = re.compile(r"%2C", re.IGNORECASE)
_SPACED_VERSE = re.compile(r"(\w)\s+(\d+):(\d+)")
_VERSE_COLON = re.compile(r":(\d+)")
_WHITESPACE = re.compile(r"\s+")

COVERAGE_TRIGGERS = ("limited coverage", "few sources", "not well covered")
COVERAGE_BANNER = (
    "⚠️ *Limited Coverage*: This topic may not be fully covered "
    "in Sefaria's collection.\n\n"
)

SLACK_FORMAT_RULES = """\
Convert this response to proper Slack formatting.

You MUST include the COMPLETE content of the input in your output. Do not
truncate, summarize, or ask whether to continue. Convert the ENTIRE response.

Formatting rules:
- Bold text: *bold text* (single asterisks only)
- Italic text: _italic text_ (underscores only)
- Headers: *Header Text* (bold, no # symbols)
- Bullets: use the bullet character
- Links: <https://www.sefaria.org/Genesis.3.4|Genesis 3:4> (angle brackets with pipe separator)
- Convert HTML links like <a href="url">text</a> to <url|text>
- No markdown headers (#, ##, ###); use *bold* instead
- No double asterisks (**); use single asterisks (*)
- No HTML tags at all

Link targets:
1. Decode %2C to a comma
2. Replace spaces in book names with underscores: "Song of Songs" -> "Song_of_Songs"
3. Replace the space before a verse reference with a period: "Genesis 3:4" -> "Genesis.3.4"
4. Replace colons in verse references with periods: "3:4" -> "3.4"

Example:
<a href="https://www.sefaria.org/Midrash_Tanchuma%2C_Bereshit.4.1" target="_blank">Midrash Tanchuma on Bereshit 4:1</a>
becomes
<https://www.sefaria.org/Midrash_Tanchuma,_Bereshit.4.1|Midrash Tanchuma on Bereshit 4:1>

Return only the converted response."""


# -- code spans ------------------------------------------------------------


def _stash_code(text: str) -> tuple[str, list[str]]:
    stash: list[str] = []

    def _put(m: re.Match) -> str:
        stash.append(m.group(0))
        return f"\x00CODE{len(stash) - 1}\x00"

    return _CODE.sub(_put, text), stash


def _restore_code(text: str, stash: list[str]) -> str:
    for idx, original in enumerate(stash):
        text = text.replace(f"\x00CODE{idx}\x00", original, 1)
    return text


# -- detection -------------------------------------------------------------


def has_anchor_links(text: str) -> bool:
    return _ANCHOR.search(_stash_code(text)[0]) is not None


def has_atx_headers(text: str) -> bool:
    return _ATX_HEADER.search(_stash_code(text)[0]) is not None


def has_double_bold(text: str) -> bool:
    return _DOUBLE_BOLD.search(_stash_code(text)[0]) is not None


def _has_defects(prose: str) -> bool:
    return bool(_ANCHOR.search(prose) or _ATX_HEADER.search(prose) or _DOUBLE_BOLD.search(prose))


def needs_slack_formatting(text: str) -> bool:
    """True when *text* contains any markup Slack will not render outside code."""
    return _has_defects(_stash_code(text)[0])


# -- deterministic conversion ------------------------------------------------


def canonicalize_url(url: str) -> str:
    """Rewrite a link target into the form Sefaria reference URLs expect.

    Only the part after ``scheme://host`` is touched, so ports survive.
    """
    url = url.strip()
    m = _URL_PREFIX.match(url)
    prefix, rest = (m.group(1), m.group(2)) if m else ("", url)
    rest = _ENCODED_COMMA.sub(",", rest)
    rest = _SPACED_VERSE.sub(r"\1.\2.\3", rest)
    rest = _VERSE_COLON.sub(r".\1", rest)
    rest = _WHITESPACE.sub("_", rest)
    return prefix + rest


def _anchor_to_slack(m: re.Match) -> str:
    label = _WHITESPACE.sub(" ", _TAG.sub("", m.group(2))).strip()
    href = _HREF.search(m.group(1))
    url = next((g for g in href.groups() if g is not None), "") if href else ""
    if not url.strip():
        return label
    url = canonicalize_url(url)
    return f"<{url}|{label}>" if label else f"<{url}>"


def _header_to_bold(m: re.Match) -> str:
    title = m.group(1).strip("*").strip()
    return f"*{title}*" if title else ""


def basic_slack_format_conversion(text: str) -> str:
    """Regex-only conversion to Slack mrkdwn.

    Anchors become ``<url|label>``, ATX headers become bold lines, and any
    run of two or more asterisks around a span collapses to one.  Each
    pass removes at least one anchor, header, or asterisk, so the loop
    always ends.  Code spans pass through verbatim.
    """
    prose, stash = _stash_code(text)
    while _has_defects(prose):
        prose = _ANCHOR.sub(_anchor_to_slack, prose)
        prose = _ATX_HEADER.sub(_header_to_bold, prose)
        prose = _BOLD_RUN.sub(r"*\1*", prose)
    return _restore_code(prose, stash)


# -- finishing -------------------------------------------------------------


def add_coverage_warning(text: str) -> str:
    if text.startswith(COVERAGE_BANNER.rstrip()):
        return text
    lowered = text.lower()
    if any(trigger in lowered for trigger in COVERAGE_TRIGGERS):
        return COVERAGE_BANNER + text
    return text


def clean_whitespace(text: str) -> str:
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" ?\n ?", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def finalize_response(text: str) -> str:
    """Coverage banner plus whitespace cleanup; idempotent."""
    return clean_whitespace(add_coverage_warning(text))
