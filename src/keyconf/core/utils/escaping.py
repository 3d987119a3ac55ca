"""Percent escaping for the colon separated record format."""

from urllib.parse import unquote

_ALWAYS = {"%": "%25", ":": "%3a", "\n": "%0a", "\r": "%0d"}


def percent_escape(text: str, extra: str = "") -> str:
    """
    Escape ``%``, ``:``, line breaks and every character in ``extra``.

    Undecodable bytes read from a config file arrive as lone surrogates
    (U+DC80..U+DCFF) and are escaped as the original byte.
    """
    out = []
    for ch in text:
        if ch in _ALWAYS:
            out.append(_ALWAYS[ch])
        elif ch in extra:
            out.append(f"%{ord(ch):02x}")
        elif "\udc80" <= ch <= "\udcff":
            out.append(f"%{ord(ch) - 0xdc00:02x}")
        else:
            out.append(ch)
    return "".join(out)


def percent_unescape(text: str) -> str:
    return unquote(text)
