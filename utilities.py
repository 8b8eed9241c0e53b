"""
Utilities module for the template language interpreter
Small pure helpers shared by the evaluator, visualizer and CLI
"""

from typing import Dict

from values import Value, pretty


# ==================== HTML ====================

HTML_ESCAPES = (
  ("&", "&amp;"),
  ("<", "&lt;"),
  (">", "&gt;"),
)


def html_escape(text: str) -> str:
  """
  Escape text for inclusion in a tag body

  Ampersands are replaced first so the entities introduced for
  angle brackets are not escaped a second time.

  Examples:
    html_escape("<b>") -> "&lt;b&gt;"
    html_escape("a & b") -> "a &amp; b"
  """
  for char, entity in HTML_ESCAPES:
    text = text.replace(char, entity)
  return text


# ==================== DISPLAY ====================

def truncate(text: str, limit: int = 60) -> str:
  """Shorten text for one-line display, marking the cut with '...'"""
  text = text.replace('\n', ' ')
  if len(text) > limit:
    return text[:limit - 3] + "..."
  return text


def format_bindings(bindings: Dict[str, Value], limit: int = 60) -> str:
  """
  Render an environment snapshot as 'name = value' pairs

  Examples:
    format_bindings({}) -> ""
    format_bindings({"x": IntValue(1)}) -> "x = 1"
  """
  return ", ".join(f"{name} = {truncate(pretty(value), limit)}" for name, value in sorted(bindings.items()))
