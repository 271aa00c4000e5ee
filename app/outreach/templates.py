"""
app/outreach/templates.py — Email template rendering.

Stored templates use {{variable}} placeholders (e.g. {{first_name}},
{{company_name}}). render_template() substitutes them, then wraps the
plain-text result in a clean HTML structure with a plain-text fallback.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Any, Optional

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


@dataclass
class RenderedEmail:
    """Final email ready to be sent — subject, HTML body, plain-text body."""
    subject: str
    html_body: str
    plain_body: str
    missing_variables: list[str] = field(default_factory=list)


def extract_variables(*texts: Optional[str]) -> list[str]:
    """Placeholder names in order of first appearance, without duplicates."""
    seen: list[str] = []
    for text in texts:
        for name in PLACEHOLDER.findall(text or ""):
            if name not in seen:
                seen.append(name)
    return seen


def fill_placeholders(text: str, variables: dict[str, Any]) -> tuple[str, list[str]]:
    """
    Replace {{name}} with variables[name]. Unknown placeholders are left
    untouched and reported.
    """
    missing: list[str] = []

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        value = variables.get(name)
        if value is None:
            if name not in missing:
                missing.append(name)
            return match.group(0)
        return str(value)

    return PLACEHOLDER.sub(_substitute, text or ""), missing


def _wrap_html(subject: str, plain_body: str, sender_name: Optional[str]) -> str:
    # Convert plain text newlines to HTML paragraphs
    paragraphs = [
        f"<p>{html.escape(line)}</p>" if line.strip() else "<br>"
        for line in plain_body.strip().splitlines()
    ]
    html_content = "\n    ".join(paragraphs)
    signature = (
        f'\n    <div class="signature"><strong>{html.escape(sender_name)}</strong></div>'
        if sender_name else ""
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(subject)}</title>
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
      font-size: 15px;
      line-height: 1.6;
      color: #1a1a1a;
      margin: 0;
    }}
    .container {{ max-width: 600px; margin: 40px auto; padding: 0 24px; }}
    p {{ margin: 0 0 12px 0; }}
    .signature {{ margin-top: 32px; color: #555; font-size: 14px; }}
  </style>
</head>
<body>
  <div class="container">
    {html_content}{signature}
  </div>
</body>
</html>"""


def render_template(
    subject: Optional[str],
    body: str,
    variables: dict[str, Any],
    sender_name: Optional[str] = None,
) -> RenderedEmail:
    """
    Fill a stored template's subject and body and render both bodies.

    Args:
        subject:     Template subject (may contain placeholders).
        body:        Template body as plain text (may contain placeholders).
        variables:   Values for the placeholders.
        sender_name: Optional sign-off shown in the HTML signature.

    Returns:
        RenderedEmail; missing_variables lists placeholders left unfilled.
    """
    rendered_subject, missing_subject = fill_placeholders(subject or "", variables)
    plain_body, missing_body = fill_placeholders(body, variables)
    missing = missing_subject + [m for m in missing_body if m not in missing_subject]

    return RenderedEmail(
        subject=rendered_subject,
        html_body=_wrap_html(rendered_subject, plain_body, sender_name),
        plain_body=plain_body,
        missing_variables=missing,
    )
