"""HTML and JSON response rendering helpers for gcs-index."""

import html
import json
import urllib.parse
from datetime import datetime, timezone

import humanize
from fastapi.responses import Response

from gcsindex.listing import Entry

_PAGE_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Index of {title}</title>
<style>
body {{ font-family: system-ui, sans-serif; margin: 2em auto; max-width: 60em; padding: 0 1em; }}
table {{ border-collapse: collapse; margin-bottom: 1em; }}
td {{ padding: 0.1em 1em 0.1em 0; font-variant-numeric: tabular-nums; }}
footer {{ border-top: 1px solid #ccc; margin-top: 2em; }}
</style>
</head>
<body>
<h1>Index of {title}</h1>
"""


def _escape(value: str) -> str:
    return html.escape(str(value), quote=True)


def _href(name: str) -> str:
    return urllib.parse.quote(name, safe="/~")


def _render_row(entry: Entry, now: datetime) -> str:
    extra = ""
    if entry.size is not None:
        extra += f"<td>{humanize.naturalsize(entry.size, binary=True)}</td>"
    if entry.timestamp is not None:
        exact = entry.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        relative = humanize.naturaltime(now - entry.timestamp)
        extra += f'<td><time title="{exact}">{relative}</time></td>'
    if entry.fingerprint is not None:
        extra += f"<td>{_escape(entry.fingerprint)}</td>"
    return (
        f'<tr><td><a href="{_href(entry.name)}">{_escape(entry.name)}</a></td>'
        f"{extra}</tr>"
    )


def render_index_html(path: str, entries: list[Entry], readme_html: str = "") -> str:
    """Render a directory listing page.

    Objects and directories go into separate tables. The root page gets no
    parent link and hides a ``favicon.ico`` entry.

    Args:
        path: The directory path being listed.
        entries: Merged, ordered listing entries.
        readme_html: Rendered README to append as a footer, if any.

    Returns:
        The complete HTML document.
    """
    now = datetime.now(timezone.utc)
    parts = [_PAGE_HEAD.format(title=_escape(path)), "<main><table>"]
    if path != "/":
        parts.append('<tr><td><a href="../">../</a></td></tr>')

    for i, entry in enumerate(entries):
        if i > 0 and not entries[i - 1].is_dir and entry.is_dir:
            parts.append("</table><table>")
        if entry.name == "favicon.ico" and path == "/":
            continue
        parts.append(_render_row(entry, now))

    parts.append("</table></main>")
    if readme_html:
        parts.append(f"<footer>\n{readme_html}</footer>")
    parts.append("</body>\n</html>\n")
    return "\n".join(parts)


def render_index_json(entries: list[Entry]) -> str:
    """Render a directory listing as a JSON array of entry records."""
    return json.dumps([entry.to_json() for entry in entries])


def html_response(body: str, status: int = 200, headers: dict[str, str] | None = None) -> Response:
    """Wrap an HTML body string in a FastAPI Response."""
    return Response(content=body, status_code=status, headers=headers, media_type="text/html")


def json_response(body: str, status: int = 200, headers: dict[str, str] | None = None) -> Response:
    """Wrap a JSON body string in a FastAPI Response."""
    return Response(
        content=body, status_code=status, headers=headers, media_type="application/json"
    )


def render_error(status: int, code: str) -> str:
    """Render a plain-text error body; backend details are never included."""
    return f"{status} {code}\n"
