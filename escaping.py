# escaping.py

from enum import Enum

from markupsafe import Markup, escape as _html_escape

# Characters that mean something to the script host as well as to markup.
_MARKUP_EXTRA = {
    "`": "&#96;",
    "$": "&#36;",
    "\\": "&#92;",
}

_SCRIPT_LITERAL = {
    "\\": "\\\\",
    "`": "\\`",
    "$": "\\$",
    "\n": "\\n",
    "\r": "\\r",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class Context(Enum):
    MARKUP = "markup"
    SCRIPT_LITERAL = "script_literal"


def escape_markup(value) -> Markup:
    """HTML-escape a value, also neutralizing script-literal metacharacters."""
    if isinstance(value, Markup):
        return value
    escaped = str(_html_escape(value))
    return Markup("".join(_MARKUP_EXTRA.get(ch, ch) for ch in escaped))


def escape_script_literal(text: str) -> str:
    """Make text safe to place between the backticks of a JS template literal."""
    return "".join(_SCRIPT_LITERAL.get(ch, ch) for ch in text)


def escape(value, context: Context) -> str:
    if context is Context.MARKUP:
        return escape_markup(value)
    if context is Context.SCRIPT_LITERAL:
        return escape_script_literal(str(value))
    raise ValueError(f"Unknown escaping context: {context!r}")
